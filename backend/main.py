"""
Server inventory API entry point.

    uvicorn main:app --host 0.0.0.0 --port 8000

or `python main.py`, which binds to settings.host / settings.port.
"""

import logging

from core.app import create_app
from core.config import settings

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(name)s] %(message)s",
)

app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=settings.host, port=settings.port, reload=settings.debug)
