from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime


@dataclass(frozen=True)
class Subscription:
    """A standing request to be emailed about new options on one route and day."""

    email: str
    origin: str  # station code, e.g. "FRPST"
    destination: str
    date: date
    preferred_time: str | None = None  # "HH:MM", Europe/Paris

    @property
    def key(self) -> str:
        """Stable identity of the subscription, used to index its snapshot."""
        return "|".join(
            [
                self.email,
                self.origin,
                self.destination,
                self.date.isoformat(),
                self.preferred_time or "",
            ]
        )

    def is_past(self, today: date) -> bool:
        return self.date < today


@dataclass(frozen=True)
class JourneyOption:
    """One concrete travel offer within a snapshot."""

    id: str | None  # upstream id; None when the feed does not expose one
    departure_time: datetime | None
    arrival_time: datetime | None
    train_label: str | None  # e.g. "TGV INOUI 6201"
    free_seats: int = 0
    train_number: str | None = None
    train_equipment: str | None = None
    origin_label: str = ""
    destination_label: str = ""

    @property
    def identity(self) -> tuple[datetime, datetime, str] | None:
        """(departure, arrival, train) triple, or None when any part is missing."""
        if self.departure_time is None or self.arrival_time is None or not self.train_label:
            return None
        return self.departure_time, self.arrival_time, self.train_label

    @property
    def duration_minutes(self) -> int | None:
        if self.departure_time is None or self.arrival_time is None:
            return None
        return int((self.arrival_time - self.departure_time).total_seconds() // 60)


@dataclass(frozen=True)
class Snapshot:
    """One fetched view of the available journeys for a route and day."""

    options: tuple[JourneyOption, ...] = ()
    fetched_at: datetime | None = None

    @property
    def has_ids(self) -> bool:
        return all(o.id for o in self.options)

    def __len__(self) -> int:
        return len(self.options)


@dataclass
class SubscribeResult:
    """What happened when a subscription was created."""

    subscription: Subscription
    initial_options: list[JourneyOption] = field(default_factory=list)
    initial_check_ok: bool = False
    confirmation_sent: bool = False
