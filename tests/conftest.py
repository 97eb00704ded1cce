"""Shared pytest fixtures for the SNCF travel watch test suite."""
from __future__ import annotations

from datetime import date

import pytest

from sncf_watch.domain.entities import Subscription


@pytest.fixture
def sample_proposal_raw() -> dict:  # type: ignore[type-arg]
    """Sample raw proposal matching the free-places API response schema."""
    return {
        "departureDate": "2026-03-10T08:10:00+01:00",
        "arrivalDate": "2026-03-10T10:20:00+01:00",
        "trainNumber": "6201",
        "trainEquipment": "TGV INOUI",
        "origin": {"rrCode": "FRPST", "label": "Paris Montparnasse"},
        "destination": {"rrCode": "FRRHE", "label": "Rennes"},
        "freePlaces": 12,
    }


@pytest.fixture
def sample_payload_raw(sample_proposal_raw: dict) -> dict:  # type: ignore[type-arg]
    """Sample free-places payload with two proposals."""
    second = dict(sample_proposal_raw)
    second.update(
        {
            "departureDate": "2026-03-10T10:05:00+01:00",
            "arrivalDate": "2026-03-10T12:01:00+01:00",
            "trainNumber": "8615",
            "freePlaces": 0,
        }
    )
    return {"proposals": [sample_proposal_raw, second]}


@pytest.fixture
def subscription() -> Subscription:
    return Subscription(
        email="alice@example.com",
        origin="FRPST",
        destination="FRRHE",
        date=date(2026, 3, 10),
    )
