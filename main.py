# main.py
import logging

import uvicorn

from drive_auth.app import create_app
from drive_auth.core.config import get_settings

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

settings = get_settings()
app = create_app(settings)


if __name__ == "__main__":
    logger.info("Starting server on port 5000")
    uvicorn.run(app, host="0.0.0.0", port=5000)
