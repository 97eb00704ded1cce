from __future__ import annotations

from enum import Enum


class MatchKind(str, Enum):
    """How options of two snapshots are recognised as the same journey.

    Using (str, Enum) for Python 3.10 compatibility (StrEnum requires 3.11+).
    """

    BY_ID = "by_id"  # every option on both sides carries an upstream id
    BY_TRIPLE = "by_triple"  # departure + arrival + train label


class LoopState(str, Enum):
    """States of the polling scheduler."""

    IDLE = "idle"
    CYCLING = "cycling"


class CheckOutcome(str, Enum):
    """Result of checking a single subscription once."""

    SKIPPED = "skipped"  # travel date already in the past
    FETCH_FAILED = "fetch_failed"
    UNCHANGED = "unchanged"  # fetched, nothing new
    NOTIFIED = "notified"
    NOTIFY_FAILED = "notify_failed"
    REMOVED = "removed"  # deleted while the check was running
