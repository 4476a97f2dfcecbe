#!/usr/bin/env python3
import logging

import uvicorn

from app.app import create_app
from app.core.config import ANALYTICS_DEV_MODE, HOST, PORT

logging.basicConfig(
    level=logging.DEBUG if ANALYTICS_DEV_MODE else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("main")

if ANALYTICS_DEV_MODE:
    logger.info("Running in DEVELOPMENT mode (auto-reload, compiled SQL logged at DEBUG)")

# Create the FastAPI app
app = create_app()


if __name__ == "__main__":
    logger.info("Starting classroom analytics on %s:%s", HOST, PORT)
    uvicorn.run("main:app", host=HOST, port=PORT, reload=ANALYTICS_DEV_MODE)
