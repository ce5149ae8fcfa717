"""Idempotency ledger: which webhook events have already been handled.

The unique ``event_id`` on ProcessedEvent is what makes marking idempotent:
a second mark for the same id collides in the store and is treated as done.
"""

from datetime import UTC, datetime

import structlog
from protean.exceptions import ValidationError
from protean.fields import DateTime, String
from protean.utils.globals import current_domain

from marketplace.domain import marketplace

logger = structlog.get_logger(__name__)


@marketplace.aggregate
class ProcessedEvent:
    event_id = String(max_length=255, required=True, unique=True)
    event_type = String(max_length=100, required=True)
    processed_at = DateTime(required=True)


class IdempotencyLedger:
    """Store-backed record of handled event ids."""

    def has_processed(self, event_id: str) -> bool:
        repo = current_domain.repository_for(ProcessedEvent)
        return bool(repo._dao.query.filter(event_id=event_id).all().items)

    def mark_processed(self, event_id: str, event_type: str) -> bool:
        """Record the event as handled. Returns False if it was already recorded."""
        if self.has_processed(event_id):
            return False

        repo = current_domain.repository_for(ProcessedEvent)
        try:
            repo.add(ProcessedEvent(event_id=event_id, event_type=event_type, processed_at=datetime.now(UTC)))
        except ValidationError as exc:
            if "event_id" not in (exc.messages or {}):
                raise
            logger.debug("Event already marked processed", event_id=event_id)
            return False
        return True
