"""Run storage maintenance manually.

Hard-deletes video files older than the retention period and refreshes
today's storage statistics snapshot.

Usage:
    python -m scripts.run_storage_maintenance --days 90
"""

import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv
load_dotenv()

from interviews_media.core.config import settings
from interviews_media.core.database import async_session_maker, engine
from interviews_media.core.logging import setup_logging
from interviews_media.core.storage import get_storage
from interviews_media.modules.video.service import VideoStorageService


async def main(days: int) -> None:
    """Run cleanup and statistics update in one transaction."""
    print("\n" + "=" * 60)
    print("Running Storage Maintenance")
    print("=" * 60)

    async with async_session_maker() as session:
        service = VideoStorageService(session, get_storage())
        cleanup = await service.cleanup_old_files(days)
        snapshot = await service.update_storage_statistics()
        await session.commit()

    await engine.dispose()

    print(f"\nResults:")
    print(f"  Files deleted: {cleanup.deleted_files}")
    print(f"  Space freed: {cleanup.space_freed_formatted}")
    print(f"  Cutoff: {cleanup.cutoff_date.isoformat()}")
    print(f"  Statistics date: {snapshot['date']}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run storage maintenance")
    parser.add_argument(
        "--days",
        type=int,
        default=settings.CLEANUP_DAYS,
        help="Delete files older than this many days",
    )
    args = parser.parse_args()

    setup_logging(json_format=settings.LOG_JSON)
    asyncio.run(main(args.days))
