from __future__ import annotations

import re
from collections.abc import Hashable, Sequence

from sncf_watch.domain.entities import JourneyOption, Snapshot
from sncf_watch.domain.value_objects import MatchKind

WINDOW_MINUTES = 60

_HHMM = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


def parse_preferred_time(value: str) -> int:
    """Return minutes since midnight for an "HH:MM" string.

    Raises ValueError when the value is not a valid 24h clock time.
    """
    match = _HHMM.match(value.strip()) if value else None
    if match is None:
        raise ValueError(f"Invalid time {value!r}, expected HH:MM")
    return int(match.group(1)) * 60 + int(match.group(2))


def clock_minutes(option: JourneyOption) -> int | None:
    """Minute of day of the departure, read from its local (Europe/Paris) clock."""
    if option.departure_time is None:
        return None
    return option.departure_time.hour * 60 + option.departure_time.minute


def within_preferred_window(option: JourneyOption, preferred_minutes: int) -> bool:
    """True when the departure lies within ±60 minutes of the preferred time.

    The band is flat arithmetic on minute-of-day: 00:30 does not reach 23:50
    and 23:30 does not reach 00:10.
    """
    minutes = clock_minutes(option)
    if minutes is None:
        return False
    return preferred_minutes - WINDOW_MINUTES <= minutes <= preferred_minutes + WINDOW_MINUTES


def choose_matcher(previous: Snapshot, current: Snapshot) -> MatchKind:
    """Pick one identity strategy for the whole snapshot pair."""
    if previous.options and current.options and previous.has_ids and current.has_ids:
        return MatchKind.BY_ID
    return MatchKind.BY_TRIPLE


def _identity(option: JourneyOption, kind: MatchKind) -> Hashable | None:
    if kind is MatchKind.BY_ID:
        return option.id or None
    return option.identity


def filter_by_preferred_time(
    options: Sequence[JourneyOption], preferred_time: str | None
) -> list[JourneyOption]:
    """Keep options departing inside the preferred window; all of them when no time is set."""
    if not preferred_time:
        return list(options)
    preferred_minutes = parse_preferred_time(preferred_time)
    return [o for o in options if within_preferred_window(o, preferred_minutes)]


def compute_new_options(
    previous: Snapshot | None,
    current: Snapshot,
    preferred_time: str | None = None,
) -> list[JourneyOption]:
    """Return the options of current that were not in previous, in current's order.

    With no previous snapshot every current option counts as new. Options
    whose identity is incomplete never match anything and therefore stay new.
    The preferred-time window is applied to the result in both cases.
    """
    if previous is None:
        fresh = list(current.options)
    else:
        kind = choose_matcher(previous, current)
        seen = {
            ident
            for ident in (_identity(o, kind) for o in previous.options)
            if ident is not None
        }
        fresh = []
        for option in current.options:
            ident = _identity(option, kind)
            if ident is None or ident not in seen:
                fresh.append(option)

    return filter_by_preferred_time(fresh, preferred_time)
