# File: scripts/seed_db.py
# Project: vecinity-backend
#
# Usage: python scripts/seed_db.py   (after `alembic upgrade head`)

import logging

from dotenv import load_dotenv

load_dotenv(override=True)

from vecinity.db.session import SessionLocal  # noqa: E402
from vecinity.db.seed import seed_initial_data  # noqa: E402


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    db = SessionLocal()
    try:
        created = seed_initial_data(db)
    finally:
        db.close()
    print("seed ->", created)


if __name__ == "__main__":
    main()
