# run.py

"""
Entry point to run the FastAPI app with Uvicorn.

This script starts the dyntable API server when executed directly.

Usage:
    python run.py

It loads the `app` instance from `dyntable.main` and serves it on the
configured `HOST`/`PORT` (default `http://0.0.0.0:3001`).
"""

import logging

import uvicorn

from dyntable.config import settings

if __name__ == "__main__":
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s [%(levelname)s] [%(name)s]: %(message)s",
    )
    uvicorn.run("dyntable.main:app", host=settings.HOST, port=settings.PORT)
