"""
Email Relay Server Runner
Run locally with: python run_relay.py
"""

import logging
import os
import sys

import uvicorn

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)

if __name__ == "__main__":
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    logger.info(f"🚀 Starting email relay on {host}:{port}...")
    try:
        uvicorn.run("email_relay.main:create_app", factory=True, host=host, port=port)
    except KeyboardInterrupt:
        logger.info("👋 Email relay stopped by user")
