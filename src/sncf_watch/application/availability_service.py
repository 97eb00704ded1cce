from __future__ import annotations

from datetime import date
from typing import Any

from sncf_watch.domain.entities import JourneyOption, Snapshot
from sncf_watch.infrastructure.sncf_client import SncfClient
from sncf_watch.infrastructure.time_utils import now_paris, parse_optional_datetime


class AvailabilityService:
    """Fetches free-places proposals and maps them to immutable snapshots."""

    def __init__(self, client: SncfClient) -> None:
        self._client = client

    async def fetch(
        self,
        origin: str,
        destination: str,
        travel_date: date,
        preferred_time: str | None = None,  # the feed has no time filter
    ) -> Snapshot:
        """Query the feed for one route and day. Raises FetchError."""
        raw = await self._client.search_freeplaces(origin, destination, travel_date)
        return self.map_snapshot(raw)

    def map_snapshot(self, raw: dict[str, Any]) -> Snapshot:
        """Map the raw payload; a missing or malformed proposals list yields no options."""
        proposals = raw.get("proposals")
        if not isinstance(proposals, list):
            proposals = []
        options = tuple(
            self._map_option(p if isinstance(p, dict) else {}) for p in proposals
        )
        return Snapshot(options=options, fetched_at=now_paris())

    def _map_option(self, raw: dict) -> JourneyOption:  # type: ignore[type-arg]
        """Map a single proposal to a JourneyOption.

        Key mappings:
        - raw["departureDate"] / raw["arrivalDate"] → times (None when unparseable)
        - raw["trainEquipment"] + raw["trainNumber"] → train_label
        - raw["freePlaces"] → free_seats (0 when missing, never negative)
        - raw["origin"]["label"] / raw["destination"]["label"] → labels
        - raw["id"] or raw["proposalId"] → id
        """
        train_number = _as_text(raw.get("trainNumber"))
        train_equipment = _as_text(raw.get("trainEquipment"))
        label = " ".join(part for part in (train_equipment, train_number) if part) or None

        explicit_id = _as_text(raw.get("id")) or _as_text(raw.get("proposalId"))

        return JourneyOption(
            id=explicit_id,
            departure_time=parse_optional_datetime(raw.get("departureDate")),
            arrival_time=parse_optional_datetime(raw.get("arrivalDate")),
            train_label=label,
            free_seats=_as_seats(raw.get("freePlaces")),
            train_number=train_number,
            train_equipment=train_equipment,
            origin_label=_label(raw.get("origin")),
            destination_label=_label(raw.get("destination")),
        )


def _as_text(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _as_seats(value: Any) -> int:
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0


def _label(value: Any) -> str:
    if isinstance(value, dict):
        return str(value.get("label") or "")
    return ""
