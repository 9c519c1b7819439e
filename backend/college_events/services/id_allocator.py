"""
Identifier allocator: one strictly increasing sequence per entity category.

IDs are handed out by the application instead of database sequences so the
assignment is explicit and does not depend on storage-engine triggers.

Guarantees:
  - next() never returns the same value twice within a category
  - values are strictly increasing within a category
  - safe for any number of concurrent callers (threads or tasks)
  - gaps are allowed (an id taken by a failed insert is simply skipped)

The counters are seeded once at startup from the highest id already stored
in each table, so a restarted process never reissues an id.
"""

import enum
import threading
from functools import lru_cache

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from college_events.core.logging import get_logger
from college_events.models import Event, PendingEvent, Ticket, User

logger = get_logger(__name__)


class EntityCategory(str, enum.Enum):
    event = "event"
    pending_event = "pending_event"
    ticket = "ticket"
    user = "user"


_CATEGORY_MODELS = {
    EntityCategory.event: Event,
    EntityCategory.pending_event: PendingEvent,
    EntityCategory.ticket: Ticket,
    EntityCategory.user: User,
}


class IdentifierAllocator:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: dict[EntityCategory, int] = {category: 0 for category in EntityCategory}
        self._initialized = False

    def next(self, category: EntityCategory) -> int:
        """Atomically fetch-and-increment the counter for `category`."""
        category = EntityCategory(category)
        with self._lock:
            self._counters[category] += 1
            return self._counters[category]

    def peek(self, category: EntityCategory) -> int:
        """Last value handed out (0 if none)."""
        with self._lock:
            return self._counters[EntityCategory(category)]

    def seed(self, category: EntityCategory, floor: int) -> None:
        """Make sure the next value is above `floor`. Never lowers a counter."""
        category = EntityCategory(category)
        with self._lock:
            if floor > self._counters[category]:
                self._counters[category] = floor

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self, db: AsyncSession) -> None:
        """Seed every category from the current max id of its table, once."""
        if self._initialized:
            return
        for category, model in _CATEGORY_MODELS.items():
            result = await db.execute(select(func.max(model.id)))
            highest = result.scalar() or 0
            self.seed(category, highest)
        self._initialized = True
        logger.info(
            "id_allocator_initialized",
            counters={category.value: self.peek(category) for category in EntityCategory},
        )


@lru_cache()
def get_allocator() -> IdentifierAllocator:
    return IdentifierAllocator()
