"""
Voting deadline sweep.

Events whose voting deadline passed are processed once: every invited
player who did not answer is declined with ``settings.auto_decline_reason``
and the event is flagged with ``auto_decline_processed`` so later sweeps
skip it.  ``run.py`` calls ``DeadlineService.process_expired`` every
``settings.deadline_sweep_seconds``.
"""

import logging
from datetime import datetime
from typing import List, Optional

from ..core.config import settings
from ..schemas.event import Event, utcnow
from .attendance_service import auto_decline
from .event_service import EventService, utc_key


logger = logging.getLogger(__name__)


class DeadlineService:

    @classmethod
    async def expired_events(cls, now: datetime) -> List[Event]:
        events = EventService.query_events(
            """
            SELECT document FROM events
            WHERE voting_deadline IS NOT NULL
              AND voting_deadline < ?
              AND auto_decline_processed = 0
            ORDER BY voting_deadline ASC
            """,
            (utc_key(now),),
        )
        return [e for e in events if e.is_voting_deadline_passed(now)]

    @classmethod
    async def process_expired(cls, now: Optional[datetime] = None) -> List[Event]:
        """Auto‑decline non‑responders of every expired event.

        Returns the processed events.
        """
        now = now or utcnow()
        events = await cls.expired_events(now)
        logger.info("Found %d events with expired voting deadlines", len(events))
        processed = [auto_decline(event, settings.auto_decline_reason, now) for event in events]
        if processed:
            EventService.save_events(processed)
        return processed
