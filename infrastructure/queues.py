# infrastructure/queues.py
from enum import Enum, auto
from typing import Final


class StrAutoEnum(str, Enum):
    """Enum whose `auto()` values are *str* equal to the lowercase name."""

    @staticmethod
    def _generate_next_value_(name, start, count, last_values):
        return name.lower()

    def __str__(self) -> str:
        return self.value


class Queue(StrAutoEnum):
    EVALUATE_BADGES = auto()
    RECORD_HALL_ENTRIES = auto()
    GENERATE_MATCH_ROAST = auto()
    MAINTAIN_CATALOGS = auto()
    SYNC_CATALOGS = auto()


QUEUES: Final = Queue

# Every channel a MatchCommittedEvent is fanned out to. SYNC_CATALOGS carries
# CatalogSyncPayload requests instead.
EFFECT_QUEUES: Final[tuple[Queue, ...]] = (
    Queue.EVALUATE_BADGES,
    Queue.RECORD_HALL_ENTRIES,
    Queue.GENERATE_MATCH_ROAST,
    Queue.MAINTAIN_CATALOGS,
)
