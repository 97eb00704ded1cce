from __future__ import annotations

import hashlib
import json
import logging
import os
import threading
from datetime import date, datetime
from pathlib import Path
from typing import Any

from sncf_watch.domain.entities import JourneyOption, Snapshot, Subscription
from sncf_watch.domain.exceptions import (
    StoreError,
    SubscriptionExistsError,
    SubscriptionNotFoundError,
)
from sncf_watch.domain.services import parse_preferred_time
from sncf_watch.infrastructure.time_utils import parse_optional_datetime

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Serialisation
# ---------------------------------------------------------------------------

def subscription_to_dict(sub: Subscription) -> dict[str, Any]:
    data: dict[str, Any] = {
        "email": sub.email,
        "origin": sub.origin,
        "destination": sub.destination,
        "date": sub.date.isoformat(),
    }
    if sub.preferred_time:
        data["preferredTime"] = sub.preferred_time
    return data


def subscription_from_dict(raw: dict[str, Any]) -> Subscription:
    """Build a Subscription from a stored record.

    The file may be edited by hand, so every field is checked. Raises
    ValueError, KeyError or TypeError for a malformed record.
    """
    fields: dict[str, str] = {}
    for name in ("email", "origin", "destination", "date"):
        value = raw[name]
        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"{name} must be a non-empty string, got {value!r}")
        fields[name] = value.strip()

    preferred_time = raw.get("preferredTime") or None
    if preferred_time is not None:
        if not isinstance(preferred_time, str):
            raise ValueError(f"preferredTime must be a string, got {preferred_time!r}")
        minutes = parse_preferred_time(preferred_time)
        preferred_time = f"{minutes // 60:02d}:{minutes % 60:02d}"

    return Subscription(
        email=fields["email"],
        origin=fields["origin"],
        destination=fields["destination"],
        date=date.fromisoformat(fields["date"]),
        preferred_time=preferred_time,
    )


def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt is not None else None


def snapshot_to_dict(snapshot: Snapshot) -> dict[str, Any]:
    return {
        "fetchedAt": _iso(snapshot.fetched_at),
        "options": [
            {
                "id": o.id,
                "departureTime": _iso(o.departure_time),
                "arrivalTime": _iso(o.arrival_time),
                "trainLabel": o.train_label,
                "freeSeats": o.free_seats,
                "trainNumber": o.train_number,
                "trainEquipment": o.train_equipment,
                "originLabel": o.origin_label,
                "destinationLabel": o.destination_label,
            }
            for o in snapshot.options
        ],
    }


def snapshot_from_dict(raw: dict[str, Any]) -> Snapshot:
    options = tuple(
        JourneyOption(
            id=o.get("id"),
            departure_time=parse_optional_datetime(o.get("departureTime")),
            arrival_time=parse_optional_datetime(o.get("arrivalTime")),
            train_label=o.get("trainLabel"),
            free_seats=int(o.get("freeSeats") or 0),
            train_number=o.get("trainNumber"),
            train_equipment=o.get("trainEquipment"),
            origin_label=o.get("originLabel") or "",
            destination_label=o.get("destinationLabel") or "",
        )
        for o in raw.get("options", [])
    )
    return Snapshot(options=options, fetched_at=parse_optional_datetime(raw.get("fetchedAt")))


def _write_json_atomic(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    os.replace(tmp, path)


# ---------------------------------------------------------------------------
# Subscriptions
# ---------------------------------------------------------------------------

class InMemorySubscriptionStore:
    def __init__(self, subscriptions: list[Subscription] | None = None) -> None:
        self._items: list[Subscription] = list(subscriptions or [])
        self._lock = threading.Lock()

    def list(self) -> list[Subscription]:
        with self._lock:
            return list(self._items)

    def add(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._items:
                raise SubscriptionExistsError("Subscription already exists")
            self._items.append(subscription)

    def remove(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription not in self._items:
                raise SubscriptionNotFoundError("Subscription not found")
            self._items.remove(subscription)


class JsonSubscriptionStore:
    """Subscriptions kept as a JSON array in a single file.

    The file is created empty on first use. Every call re-reads it so that
    edits made by another process are picked up at the next cycle.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.Lock()

    def _read(self) -> list[Subscription]:
        if not self._path.exists():
            return []
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            return [subscription_from_dict(item) for item in raw]
        except (OSError, ValueError, KeyError, TypeError) as exc:
            raise StoreError(f"Cannot read subscriptions from {self._path}: {exc}") from exc

    def _write(self, items: list[Subscription]) -> None:
        try:
            _write_json_atomic(self._path, [subscription_to_dict(s) for s in items])
        except OSError as exc:
            raise StoreError(f"Cannot write subscriptions to {self._path}: {exc}") from exc

    def list(self) -> list[Subscription]:
        with self._lock:
            return self._read()

    def add(self, subscription: Subscription) -> None:
        with self._lock:
            items = self._read()
            if subscription in items:
                raise SubscriptionExistsError("Subscription already exists")
            items.append(subscription)
            self._write(items)

    def remove(self, subscription: Subscription) -> None:
        with self._lock:
            items = self._read()
            remaining = [s for s in items if s != subscription]
            if len(remaining) == len(items):
                raise SubscriptionNotFoundError("Subscription not found")
            self._write(remaining)


# ---------------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------------

class InMemorySnapshotStore:
    def __init__(self) -> None:
        self._snapshots: dict[str, Snapshot] = {}

    def get_previous(self, key: str) -> Snapshot | None:
        return self._snapshots.get(key)

    def set_previous(self, key: str, snapshot: Snapshot) -> None:
        self._snapshots[key] = snapshot

    def discard(self, key: str) -> None:
        self._snapshots.pop(key, None)


class JsonSnapshotStore:
    """One JSON file per subscription key holding its latest snapshot."""

    def __init__(self, directory: Path) -> None:
        self._dir = directory
        self._lock = threading.Lock()

    def path_for(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()[:24]
        return self._dir / f"snapshot-{digest}.json"

    def get_previous(self, key: str) -> Snapshot | None:
        path = self.path_for(key)
        with self._lock:
            if not path.exists():
                return None
            try:
                return snapshot_from_dict(json.loads(path.read_text(encoding="utf-8")))
            except (OSError, ValueError, TypeError, AttributeError) as exc:
                raise StoreError(f"Cannot read snapshot {path}: {exc}") from exc

    def set_previous(self, key: str, snapshot: Snapshot) -> None:
        path = self.path_for(key)
        with self._lock:
            try:
                _write_json_atomic(path, {"key": key, **snapshot_to_dict(snapshot)})
            except OSError as exc:
                raise StoreError(f"Cannot write snapshot {path}: {exc}") from exc
        logger.debug("Snapshot for %s saved to %s", key, path)

    def discard(self, key: str) -> None:
        path = self.path_for(key)
        with self._lock:
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                raise StoreError(f"Cannot delete snapshot {path}: {exc}") from exc
