"""Capabilities the polling engine and the subscription service depend on.

Concrete implementations live in sncf_watch.infrastructure; tests swap in
in-memory stores and AsyncMock collaborators.
"""
from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from typing import Protocol

from sncf_watch.domain.entities import JourneyOption, Snapshot, Subscription


class AvailabilityFetcher(Protocol):
    async def fetch(
        self,
        origin: str,
        destination: str,
        travel_date: date,
        preferred_time: str | None = None,
    ) -> Snapshot:
        """Return the current snapshot. Raises FetchError."""
        ...


class Notifier(Protocol):
    async def notify(
        self,
        email: str,
        origin: str,
        destination: str,
        travel_date: date,
        new_options: Sequence[JourneyOption],
        preferred_time: str | None = None,
    ) -> None:
        """Announce new options. Raises NotifyError."""
        ...

    async def confirm(
        self,
        email: str,
        origin: str,
        destination: str,
        travel_date: date,
        initial_snapshot: Snapshot | None = None,
        preferred_time: str | None = None,
    ) -> None:
        """Acknowledge a new subscription. Raises NotifyError."""
        ...


class SubscriptionStore(Protocol):
    def list(self) -> list[Subscription]: ...

    def add(self, subscription: Subscription) -> None: ...

    def remove(self, subscription: Subscription) -> None: ...


class SnapshotStore(Protocol):
    def get_previous(self, key: str) -> Snapshot | None: ...

    def set_previous(self, key: str, snapshot: Snapshot) -> None: ...

    def discard(self, key: str) -> None: ...


class Sleeper(Protocol):
    @property
    def stopped(self) -> bool: ...

    async def sleep(self, seconds: float) -> bool:
        """Wait; return False when woken early by a stop request."""
        ...
