from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Callable
from datetime import date

from sncf_watch.application.ports import (
    AvailabilityFetcher,
    Notifier,
    SnapshotStore,
    SubscriptionStore,
)
from sncf_watch.domain.entities import JourneyOption, Snapshot, SubscribeResult, Subscription
from sncf_watch.domain.exceptions import (
    FetchError,
    NotifyError,
    SubscriptionExistsError,
    ValidationError,
)
from sncf_watch.domain.services import filter_by_preferred_time, parse_preferred_time
from sncf_watch.infrastructure.time_utils import parse_travel_date, today_paris

logger = logging.getLogger(__name__)

_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_STATION = re.compile(r"^[A-Z0-9]{2,10}$")


def validate_route(
    origin: str,
    destination: str,
    travel_date: str,
    preferred_time: str | None = None,
) -> tuple[str, str, date, str | None]:
    """Return (origin, destination, date, preferred_time) normalised.

    Station codes are upper-cased and the time is rewritten as zero-padded
    HH:MM. Raises ValidationError naming the first offending field.
    """
    codes = []
    for field_name, value in (("origin", origin), ("destination", destination)):
        code = (value or "").strip().upper()
        if not _STATION.match(code):
            raise ValidationError(f"Invalid {field_name} station code: {value!r}")
        codes.append(code)
    if codes[0] == codes[1]:
        raise ValidationError("Origin and destination must differ")

    try:
        parsed_date = parse_travel_date(travel_date or "")
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc

    normalised_time: str | None = None
    if preferred_time is not None and preferred_time.strip():
        try:
            minutes = parse_preferred_time(preferred_time)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        normalised_time = f"{minutes // 60:02d}:{minutes % 60:02d}"

    return codes[0], codes[1], parsed_date, normalised_time


def build_subscription(
    email: str,
    origin: str,
    destination: str,
    travel_date: str,
    preferred_time: str | None = None,
) -> Subscription:
    """Validate raw user input and return a normalised Subscription."""
    email = (email or "").strip()
    if not _EMAIL.match(email):
        raise ValidationError(f"Invalid email address: {email!r}")
    origin, destination, parsed_date, normalised_time = validate_route(
        origin, destination, travel_date, preferred_time
    )
    return Subscription(
        email=email,
        origin=origin,
        destination=destination,
        date=parsed_date,
        preferred_time=normalised_time,
    )


class SubscriptionService:
    """Create, list and delete subscriptions on behalf of the tool surface.

    Store calls run in a worker thread so file I/O never blocks the event loop
    shared with the poll loop and the MCP transport.
    """

    def __init__(
        self,
        subscriptions: SubscriptionStore,
        snapshots: SnapshotStore,
        fetcher: AvailabilityFetcher,
        notifier: Notifier,
        today: Callable[[], date] = today_paris,
    ) -> None:
        self._subscriptions = subscriptions
        self._snapshots = snapshots
        self._fetcher = fetcher
        self._notifier = notifier
        self._today = today

    async def subscribe(
        self,
        email: str,
        origin: str,
        destination: str,
        travel_date: str,
        preferred_time: str | None = None,
    ) -> SubscribeResult:
        """Take the baseline, store the subscription and send the confirmation.

        The baseline snapshot is written before the subscription becomes
        visible to the poll loop, so the first poll never re-announces the
        options listed in the confirmation. Raises ValidationError for bad
        input or a past date and SubscriptionExistsError for a duplicate.
        Failures of the initial fetch or of the confirmation email are
        logged, not raised.
        """
        sub = build_subscription(email, origin, destination, travel_date, preferred_time)
        if sub.is_past(self._today()):
            raise ValidationError(f"Travel date {sub.date.isoformat()} is in the past")
        if sub in await asyncio.to_thread(self._subscriptions.list):
            raise SubscriptionExistsError("Subscription already exists")

        result = SubscribeResult(subscription=sub)
        initial: Snapshot | None = None
        try:
            initial = await self._fetcher.fetch(sub.origin, sub.destination, sub.date, sub.preferred_time)
        except FetchError as exc:
            logger.warning("Initial check failed for %s: %s", sub.key, exc)
            # a leftover from an earlier subscription must not become the baseline
            await asyncio.to_thread(self._snapshots.discard, sub.key)
        else:
            await asyncio.to_thread(self._snapshots.set_previous, sub.key, initial)
            result.initial_check_ok = True
            result.initial_options = filter_by_preferred_time(initial.options, sub.preferred_time)
            logger.info("Initial check done for %s to %s on %s", sub.origin, sub.destination, sub.date)

        await asyncio.to_thread(self._subscriptions.add, sub)

        shown = Snapshot(tuple(result.initial_options), initial.fetched_at) if initial is not None else None
        try:
            await self._notifier.confirm(
                sub.email, sub.origin, sub.destination, sub.date, shown, sub.preferred_time
            )
            result.confirmation_sent = True
        except NotifyError as exc:
            logger.warning("Confirmation email to %s failed: %s", sub.email, exc)

        return result

    async def list_subscriptions(self, email: str | None = None) -> list[Subscription]:
        subs = await asyncio.to_thread(self._subscriptions.list)
        if email:
            wanted = email.strip().lower()
            subs = [s for s in subs if s.email.lower() == wanted]
        return subs

    async def unsubscribe(
        self,
        email: str,
        origin: str,
        destination: str,
        travel_date: str,
        preferred_time: str | None = None,
    ) -> Subscription:
        """Delete the subscription matching all fields. Raises SubscriptionNotFoundError."""
        sub = build_subscription(email, origin, destination, travel_date, preferred_time)
        await asyncio.to_thread(self._subscriptions.remove, sub)
        await asyncio.to_thread(self._snapshots.discard, sub.key)
        logger.info("Subscription %s deleted", sub.key)
        return sub

    async def check_availability(
        self,
        origin: str,
        destination: str,
        travel_date: str,
        preferred_time: str | None = None,
    ) -> list[JourneyOption]:
        """Fetch the current options for a route without touching any store."""
        origin, destination, parsed_date, normalised_time = validate_route(
            origin, destination, travel_date, preferred_time
        )
        snapshot = await self._fetcher.fetch(origin, destination, parsed_date, normalised_time)
        return filter_by_preferred_time(snapshot.options, normalised_time)
