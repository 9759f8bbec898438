"""Create the media tables on the configured database.

Usage:
    python -m scripts.create_database
"""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv
load_dotenv()

from sqlalchemy.exc import SQLAlchemyError

from interviews_media.core.config import settings
from interviews_media.core.database import engine, init_db


async def create_database() -> int:
    """Create all tables that do not exist yet."""
    print("=" * 50)
    print("Creating Media Tables")
    print("=" * 50)
    print()
    print(f"  Database: {engine.url.render_as_string(hide_password=True)}")
    print(f"  Storage root: {settings.STORAGE_ROOT}")
    print()

    try:
        await init_db()
    except SQLAlchemyError as e:
        print(f"✗ Error: {e}")
        return 1
    finally:
        await engine.dispose()

    print("✓ Tables created.")
    print()
    print("Next steps:")
    print("  1. Stamp migrations: alembic stamp head")
    print("  2. Start the server: uvicorn interviews_media.main:app --reload")
    print()
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(create_database()))
