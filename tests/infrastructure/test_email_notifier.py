"""Tests for the SMTP notifier and the email templates."""
from __future__ import annotations

import smtplib
from dataclasses import replace
from datetime import date, datetime
from unittest.mock import AsyncMock, patch

import pytest

from sncf_watch.domain.entities import JourneyOption, Snapshot
from sncf_watch.domain.exceptions import NotifyError
from sncf_watch.infrastructure.email_notifier import EmailNotifier
from sncf_watch.infrastructure.email_templates import (
    render_confirmation,
    render_notification,
    station_names,
)
from sncf_watch.infrastructure.settings import Settings
from sncf_watch.infrastructure.time_utils import PARIS_TZ

TRAVEL_DATE = date(2026, 3, 10)


def make_option(label: str | None = "TGV INOUI 6201", seats: int = 7) -> JourneyOption:
    return JourneyOption(
        id=None,
        departure_time=datetime(2026, 3, 10, 8, 10, tzinfo=PARIS_TZ),
        arrival_time=datetime(2026, 3, 10, 10, 20, tzinfo=PARIS_TZ),
        train_label=label,
        free_seats=seats,
    )


def make_settings(**overrides) -> Settings:  # type: ignore[no-untyped-def]
    values = {
        "smtp_host": "smtp.test",
        "smtp_port": 587,
        "smtp_username": "monitor@test.fr",
        "smtp_password": "secret",
        "email_from": "monitor@test.fr",
    }
    values.update(overrides)
    return Settings(**values)


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

def test_notification_subject_and_rows() -> None:
    subject, html = render_notification("FRPST", "FRRHE", TRAVEL_DATE, [make_option()])
    assert subject == "Nouvelles options de voyage pour FRPST → FRRHE le 10/03/2026"
    assert "10/03/2026 08:10" in html
    assert "10/03/2026 10:20" in html
    assert "TGV INOUI 6201" in html
    assert "2h 10min" in html


def test_notification_mentions_preferred_time() -> None:
    subject, html = render_notification("FRPST", "FRRHE", TRAVEL_DATE, [make_option()], "09:00")
    assert subject.endswith(" à 09:00 (±1 heure)")
    assert "09:00" in html


def test_notification_escapes_labels() -> None:
    _, html = render_notification("FRPST", "FRRHE", TRAVEL_DATE, [make_option("<b>TGV</b>")])
    assert "<b>TGV</b>" not in html
    assert "&lt;b&gt;TGV&lt;/b&gt;" in html


def test_notification_unknown_train_label() -> None:
    _, html = render_notification("FRPST", "FRRHE", TRAVEL_DATE, [make_option(None)])
    assert html.count(">Train<") == 2  # header cell and fallback label


def named(option: JourneyOption) -> JourneyOption:
    return replace(option, origin_label="Paris Montparnasse", destination_label="Rennes")


def test_notification_uses_station_names() -> None:
    options = [make_option(), named(make_option())]
    subject, html = render_notification("FRPST", "FRRHE", TRAVEL_DATE, options)
    assert subject == "Nouvelles options de voyage pour Paris Montparnasse → Rennes le 10/03/2026"
    assert "<strong>Trajet:</strong> Paris Montparnasse → Rennes" in html
    assert "FRPST" not in html


def test_station_names_fall_back_to_codes() -> None:
    assert station_names("FRPST", "FRRHE", []) == ("FRPST", "FRRHE")
    assert station_names("FRPST", "FRRHE", [make_option()]) == ("FRPST", "FRRHE")


def test_confirmation_uses_station_names() -> None:
    _, html = render_confirmation("FRPST", "FRRHE", TRAVEL_DATE, Snapshot((named(make_option()),)))
    assert "<strong>Route:</strong> Paris Montparnasse to Rennes" in html


def test_confirmation_without_snapshot_shows_codes() -> None:
    _, html = render_confirmation("FRPST", "FRRHE", TRAVEL_DATE, None)
    assert "<strong>Route:</strong> FRPST to FRRHE" in html


def test_confirmation_lists_current_options() -> None:
    snapshot = Snapshot((make_option(seats=42),))
    subject, html = render_confirmation("FRPST", "FRRHE", TRAVEL_DATE, snapshot)
    assert subject == "Subscription Confirmed: SNCF Travel Monitor"
    assert "Currently Available Travel Options" in html
    assert ">42<" in html


def test_confirmation_without_options() -> None:
    _, html = render_confirmation("FRPST", "FRRHE", TRAVEL_DATE, None, "07:30")
    assert "No travel options are currently available" in html
    assert "Preferred Time:</strong> 07:30" in html


# ---------------------------------------------------------------------------
# EmailNotifier
# ---------------------------------------------------------------------------

async def test_send_uses_starttls_and_login() -> None:
    notifier = EmailNotifier(make_settings())
    with patch("sncf_watch.infrastructure.email_notifier.smtplib.SMTP") as mock_smtp:
        server = mock_smtp.return_value.__enter__.return_value
        await notifier.send("alice@example.com", "Hello", "<p>hi</p>")

    mock_smtp.assert_called_once_with("smtp.test", 587, timeout=30)
    server.starttls.assert_called_once()
    server.login.assert_called_once_with("monitor@test.fr", "secret")
    message = server.send_message.call_args[0][0]
    assert message["To"] == "alice@example.com"
    assert message["From"] == "monitor@test.fr"
    assert message["Subject"] == "Hello"


async def test_send_over_ssl() -> None:
    notifier = EmailNotifier(make_settings(smtp_use_ssl=True, smtp_port=465))
    with patch("sncf_watch.infrastructure.email_notifier.smtplib.SMTP_SSL") as mock_ssl:
        server = mock_ssl.return_value.__enter__.return_value
        await notifier.send("alice@example.com", "Hello", "<p>hi</p>")

    mock_ssl.assert_called_once_with("smtp.test", 465, timeout=30)
    server.starttls.assert_not_called()
    server.send_message.assert_called_once()


async def test_send_failure_raises_notify_error() -> None:
    notifier = EmailNotifier(make_settings())
    with patch("sncf_watch.infrastructure.email_notifier.smtplib.SMTP") as mock_smtp:
        server = mock_smtp.return_value.__enter__.return_value
        server.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")
        with pytest.raises(NotifyError, match="alice@example.com"):
            await notifier.send("alice@example.com", "Hello", "<p>hi</p>")


async def test_connection_failure_raises_notify_error() -> None:
    notifier = EmailNotifier(make_settings())
    with patch(
        "sncf_watch.infrastructure.email_notifier.smtplib.SMTP",
        side_effect=ConnectionRefusedError("refused"),
    ):
        with pytest.raises(NotifyError):
            await notifier.send("alice@example.com", "Hello", "<p>hi</p>")


async def test_missing_credentials_raise_without_connecting() -> None:
    notifier = EmailNotifier(make_settings(smtp_username="", smtp_password=""))
    with patch("sncf_watch.infrastructure.email_notifier.smtplib.SMTP") as mock_smtp:
        with pytest.raises(NotifyError, match="not configured"):
            await notifier.send("alice@example.com", "Hello", "<p>hi</p>")
    mock_smtp.assert_not_called()


async def test_notify_renders_notification() -> None:
    notifier = EmailNotifier(make_settings())
    notifier.send = AsyncMock()  # type: ignore[method-assign]
    await notifier.notify("alice@example.com", "FRPST", "FRRHE", TRAVEL_DATE, [make_option()])
    to, subject, html = notifier.send.call_args[0]
    assert to == "alice@example.com"
    assert subject.startswith("Nouvelles options de voyage")
    assert "TGV INOUI 6201" in html


async def test_confirm_renders_confirmation() -> None:
    notifier = EmailNotifier(make_settings())
    notifier.send = AsyncMock()  # type: ignore[method-assign]
    await notifier.confirm("alice@example.com", "FRPST", "FRRHE", TRAVEL_DATE, None)
    _, subject, _ = notifier.send.call_args[0]
    assert subject.startswith("Subscription Confirmed")