"""
Development server for the CMS API.

Uvicorn on Windows hardcodes ProactorEventLoop in its asyncio loop factory,
which is incompatible with asyncpg. This script patches that before startup.

Usage:
    python run.py                     # reload follows APP_ENV=development
    python run.py --no-reload --port 8080
"""
import sys

if sys.platform == "win32":
    import asyncio

    import uvicorn.loops.asyncio as _uvicorn_loops

    def _selector_loop_factory(use_subprocess: bool = False):
        return asyncio.SelectorEventLoop

    _uvicorn_loops.asyncio_loop_factory = _selector_loop_factory

import argparse

import uvicorn

from app.config import settings

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run the Youth Organization CMS API")
    parser.add_argument(
        "--reload",
        action=argparse.BooleanOptionalAction,
        default=settings.APP_ENV == "development",
    )
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()

    uvicorn.run(
        "app.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        # Storage objects and the palette document are written at runtime
        reload_excludes=["storage/*"] if args.reload else None,
        log_level=settings.LOG_LEVEL.lower(),
        loop="asyncio",
    )
