from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from datetime import date

from sncf_watch.application.ports import (
    AvailabilityFetcher,
    Notifier,
    Sleeper,
    SnapshotStore,
    SubscriptionStore,
)
from sncf_watch.domain.entities import JourneyOption, Snapshot, Subscription
from sncf_watch.domain.exceptions import FetchError, NotifyError, StoreError
from sncf_watch.domain.services import compute_new_options
from sncf_watch.domain.value_objects import CheckOutcome, LoopState
from sncf_watch.infrastructure.time_utils import today_paris

logger = logging.getLogger(__name__)

PACING_DELAY = 60.0  # seconds between two subscriptions
IDLE_WAIT = 60.0  # seconds before re-reading an empty subscription list


class PollLoop:
    """Sequential scheduler that checks every subscription, one at a time.

    Each cycle re-reads the subscription list, checks the entries in order
    with a fixed pause between them and starts the next cycle right away.
    With no subscriptions it idles. Store calls run in a worker thread; the
    long waits are the sleeper's, so stopping the sleeper ends run_forever()
    promptly.
    """

    def __init__(
        self,
        subscriptions: SubscriptionStore,
        snapshots: SnapshotStore,
        fetcher: AvailabilityFetcher,
        notifier: Notifier,
        sleeper: Sleeper,
        *,
        today: Callable[[], date] = today_paris,
        pacing_delay: float = PACING_DELAY,
        idle_wait: float = IDLE_WAIT,
        fetch_timeout: float | None = None,
        notify_timeout: float | None = None,
        restart_on_crash: bool = True,
    ) -> None:
        self._subscriptions = subscriptions
        self._snapshots = snapshots
        self._fetcher = fetcher
        self._notifier = notifier
        self._sleeper = sleeper
        self._today = today
        self._pacing_delay = pacing_delay
        self._idle_wait = idle_wait
        self._fetch_timeout = fetch_timeout
        self._notify_timeout = notify_timeout
        self._restart_on_crash = restart_on_crash
        self._state = LoopState.IDLE

    @property
    def state(self) -> LoopState:
        return self._state

    async def run_forever(self) -> None:
        """Poll until the sleeper is stopped.

        A crash in the loop itself is logged and, with restart_on_crash, the
        loop resumes after the idle wait; otherwise the exception propagates.
        """
        logger.info("Starting continuous subscription processing")
        while not self._sleeper.stopped:
            try:
                await self.run_cycle()
            except Exception:
                if not self._restart_on_crash:
                    raise
                logger.exception("Poll loop crashed, restarting in %.0f s", self._idle_wait)
                await self._sleeper.sleep(self._idle_wait)
        logger.info("Subscription processing stopped")

    async def run_cycle(self) -> None:
        """Run one pass over the subscription list as it is right now."""
        try:
            subscriptions = await asyncio.to_thread(self._subscriptions.list)
        except StoreError as exc:
            logger.warning("Cannot read subscriptions, waiting %.0f s: %s", self._idle_wait, exc)
            self._state = LoopState.IDLE
            await self._sleeper.sleep(self._idle_wait)
            return

        if not subscriptions:
            self._state = LoopState.IDLE
            logger.info("No subscriptions to process. Waiting for %.0f s.", self._idle_wait)
            await self._sleeper.sleep(self._idle_wait)
            return

        self._state = LoopState.CYCLING
        checked = 0
        for subscription in subscriptions:
            if self._sleeper.stopped:
                return
            try:
                outcome = await self.check_subscription(subscription)
            except StoreError as exc:
                logger.warning("Storage error while checking %s: %s", subscription.key, exc)
            except Exception:
                logger.exception("Error checking subscription %s", subscription.key)
            else:
                if outcome is CheckOutcome.SKIPPED:
                    continue
            checked += 1
            await self._sleeper.sleep(self._pacing_delay)

        if not checked:
            # every entry is past its travel date; nothing paced this cycle
            logger.info("No upcoming subscriptions. Waiting for %.0f s.", self._idle_wait)
            await self._sleeper.sleep(self._idle_wait)
            return
        logger.info("Completed processing all subscriptions. Starting again.")

    async def check_subscription(self, subscription: Subscription) -> CheckOutcome:
        """Fetch, diff, notify and persist for one subscription.

        Fetch and notify failures are handled here. StoreError propagates to
        the caller. The fetched snapshot becomes the new baseline even when the
        notification could not be sent. A subscription deleted while its fetch
        was in flight is neither notified nor left with a snapshot.
        """
        if subscription.is_past(self._today()):
            logger.debug("Skipping past subscription %s", subscription.key)
            return CheckOutcome.SKIPPED

        logger.info(
            "Checking subscription: %s to %s on %s for %s",
            subscription.origin,
            subscription.destination,
            subscription.date,
            subscription.email,
        )
        try:
            current = await self._fetch(subscription)
        except FetchError as exc:
            logger.warning("Fetch failed for %s: %s", subscription.key, exc)
            return CheckOutcome.FETCH_FAILED

        if not await self._is_active(subscription):
            logger.info("Subscription %s was deleted during the check", subscription.key)
            return CheckOutcome.REMOVED

        previous = await asyncio.to_thread(self._snapshots.get_previous, subscription.key)
        new_options = compute_new_options(previous, current, subscription.preferred_time)

        outcome = CheckOutcome.UNCHANGED
        if new_options:
            try:
                await self._notify(subscription, new_options)
                outcome = CheckOutcome.NOTIFIED
            except NotifyError as exc:
                logger.warning("Notification failed for %s: %s", subscription.email, exc)
                outcome = CheckOutcome.NOTIFY_FAILED

        await asyncio.to_thread(self._snapshots.set_previous, subscription.key, current)
        # unsubscribe removes first and discards second; checking after the
        # write means one of the two sides always deletes the snapshot
        if not await self._is_active(subscription):
            await asyncio.to_thread(self._snapshots.discard, subscription.key)
            logger.info("Subscription %s was deleted during the check", subscription.key)
            return CheckOutcome.REMOVED

        logger.info(
            "%s: %d options, %d new", subscription.key, len(current), len(new_options)
        )
        return outcome

    async def _is_active(self, subscription: Subscription) -> bool:
        return subscription in await asyncio.to_thread(self._subscriptions.list)

    async def _fetch(self, subscription: Subscription) -> Snapshot:
        try:
            return await asyncio.wait_for(
                self._fetcher.fetch(
                    subscription.origin,
                    subscription.destination,
                    subscription.date,
                    subscription.preferred_time,
                ),
                timeout=self._fetch_timeout,
            )
        except asyncio.TimeoutError as exc:
            raise FetchError(f"Fetch timed out after {self._fetch_timeout} s") from exc

    async def _notify(
        self, subscription: Subscription, new_options: Sequence[JourneyOption]
    ) -> None:
        try:
            await asyncio.wait_for(
                self._notifier.notify(
                    subscription.email,
                    subscription.origin,
                    subscription.destination,
                    subscription.date,
                    new_options,
                    subscription.preferred_time,
                ),
                timeout=self._notify_timeout,
            )
        except asyncio.TimeoutError as exc:
            raise NotifyError(f"Notification timed out after {self._notify_timeout} s") from exc
