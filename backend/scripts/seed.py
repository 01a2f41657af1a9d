"""
Load portfolio content (projects, achievements, experiences) from a JSON file.

Usage:
    cd backend
    DATABASE_URL=postgresql://... python -m scripts.seed data/portfolio.json
"""
import asyncio
import sys
import logging

from portfolio.config import get_settings
from portfolio.services.seed import load_seed
from portfolio.storage import build_storage

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def main(file_path: str):
    storage = build_storage(get_settings())
    await storage.init()
    try:
        result = await load_seed(storage, file_path)
    finally:
        await storage.close()
    if result["errors"]:
        logger.warning(f"{result['errors']} entries were skipped")


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python -m scripts.seed <path-to-json>")
        sys.exit(1)
    asyncio.run(main(sys.argv[1]))
