"""Repair stale projections: re-fold every campaign whose row lags its event stream.

Run after a crash between an append and its projection update, or with
--all to rebuild every campaign from the log.
"""

import argparse
import asyncio

from campaign_tracker.core.config import get_settings
from campaign_tracker.core.logging import configure_structlog
from campaign_tracker.db.base import close_db, get_session_factory, init_db
from campaign_tracker.domain.statuses import STREAM_TYPE_CAMPAIGN
from campaign_tracker.services.event_log import EventLog
from campaign_tracker.services.projection_service import ProjectionService


async def main(rebuild_all: bool) -> None:
    settings = get_settings()
    configure_structlog(log_level=settings.log_level, json_logs=False)
    await init_db()

    try:
        projections = ProjectionService(get_session_factory())
        if rebuild_all:
            streams = sorted(await EventLog(get_session_factory()).latest_event_ids(STREAM_TYPE_CAMPAIGN))
            for stream_id in streams:
                await projections.rebuild(stream_id)
        else:
            streams = await projections.rebuild_stale()

        print(f"Rebuilt {len(streams)} projection(s).")
        for stream_id in streams:
            print(f"  {stream_id}")
    finally:
        await close_db()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--all", action="store_true", dest="rebuild_all", help="rebuild every campaign")
    args = parser.parse_args()
    asyncio.run(main(args.rebuild_all))
