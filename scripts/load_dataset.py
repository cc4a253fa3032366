"""
Load the Parfumo dataset into the local database.

Safe to run repeatedly: a version marker makes reruns no-ops unless --force.

Usage:
    python scripts/load_dataset.py [--source PATH_OR_URL] [--force]
"""
import argparse
import asyncio
import os
import sys

# Add parent directory to path so we can import from app
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

load_dotenv()

from database import engine, init_db
from observability import setup_logging
from sourcing.dataset_loader import load_parfumo_dataset


async def main(source, force):
    await init_db()
    count = await load_parfumo_dataset(engine, source, force=force)
    print(f"Loaded {count} dataset rows" if count else "Dataset already loaded")
    await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Load the Parfumo dataset")
    parser.add_argument("--source", help="Local path or URL of the dataset JSON")
    parser.add_argument("--force", action="store_true", help="Reload even if already loaded")
    args = parser.parse_args()
    setup_logging()
    asyncio.run(main(args.source, args.force))
