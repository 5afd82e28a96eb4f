"""captionsync: FastAPI server for the timeline & caption editor.

Start with:
    python main.py
    python main.py --host 0.0.0.0 --port 8000
    python main.py --config config.yaml --reload
"""

from __future__ import annotations

import argparse
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

load_dotenv()


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Assign a unique request_id to every incoming request for log correlation."""

    async def dispatch(self, request: Request, call_next):
        from captionsync.utils.logging import set_request_id
        rid = request.headers.get("x-request-id", "")
        rid = set_request_id(rid)
        response = await call_next(request)
        response.headers["x-request-id"] = rid
        return response


@asynccontextmanager
async def lifespan(application: FastAPI):
    # Startup
    from captionsync.api import routes
    from captionsync.utils.logging import Verbosity, info, setup_logging, success

    setup_logging(Verbosity.NORMAL)
    info("captionsync starting...")

    cfg = routes.get_config()
    store = routes.get_store()
    info(f"Projects stored: {len(store.list())} ({cfg.store.backend})")

    generator = routes.create_generator(cfg)
    if generator is not None:
        ok, msg = generator.check_available()
        info(f"Caption generation: {generator.name}" + ("" if ok else f" (unavailable: {msg})"))

    success("Server ready")

    yield  # app runs here

    # Shutdown: write pending autosaves
    for scheduler in list(routes._autosavers.values()):
        scheduler.flush()
        scheduler.stop()
    routes._autosavers.clear()
    routes._sessions.clear()


app = FastAPI(
    title="captionsync",
    description="Segment timeline and word-level caption editor",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestIdMiddleware)

# ── API Routes ────────────────────────────────────────────────────────────────

from captionsync.api.routes import router as api_router  # noqa: E402
app.include_router(api_router)


@app.get("/health", include_in_schema=False)
async def health():
    return {"status": "ok"}


# ── CLI Entry Point ───────────────────────────────────────────────────────────

def main():
    parser = argparse.ArgumentParser(description="captionsync server")
    parser.add_argument("--host", default="127.0.0.1", help="Bind host (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="Port (default: 8000)")
    parser.add_argument("--config", default=None, help="Path to a YAML config file")
    parser.add_argument("--reload", action="store_true", help="Auto-reload on code changes")
    parser.add_argument("--store", choices=["json", "memory"], default=None,
                        help="Project store backend (overrides the config file)")
    parser.add_argument("--store-path", default=None, help="JSON project store file")
    parser.add_argument("--autosave-delay", type=float, default=None,
                        help="Seconds of quiet before an autosave")
    parser.add_argument("--write-config", action="store_true",
                        help="Write a default config.yaml and exit")
    args = parser.parse_args()

    if args.write_config:
        from pathlib import Path
        from captionsync.utils.config import DEFAULT_CONFIG_YAML
        Path("config.yaml").write_text(DEFAULT_CONFIG_YAML, encoding="utf-8")
        print("config.yaml written")
        return

    if args.config:
        os.environ["CAPTIONSYNC_CONFIG"] = args.config
    for var, val in (("CAPTIONSYNC_STORE_BACKEND", args.store),
                     ("CAPTIONSYNC_STORE_PATH", args.store_path),
                     ("CAPTIONSYNC_AUTOSAVE_DELAY", args.autosave_delay)):
        if val is not None:
            os.environ[var] = str(val)

    import uvicorn
    uvicorn.run(
        "main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="info",
    )


if __name__ == "__main__":
    main()
