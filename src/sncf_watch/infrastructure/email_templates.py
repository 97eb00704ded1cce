from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from html import escape

from sncf_watch.domain.entities import JourneyOption, Snapshot
from sncf_watch.infrastructure.time_utils import (
    format_duration,
    format_fr_date,
    format_fr_datetime,
)

BOOKING_URL = "https://www.sncf-connect.com/"


def _train_cell(option: JourneyOption) -> str:
    return escape(option.train_label or "Train")


def station_names(
    origin: str, destination: str, options: Sequence[JourneyOption]
) -> tuple[str, str]:
    """Human station names from the first option carrying them, else the codes."""
    origin_name = next((o.origin_label for o in options if o.origin_label), origin)
    destination_name = next(
        (o.destination_label for o in options if o.destination_label), destination
    )
    return origin_name, destination_name


def render_notification(
    origin: str,
    destination: str,
    travel_date: date,
    new_options: Sequence[JourneyOption],
    preferred_time: str | None = None,
) -> tuple[str, str]:
    """Return (subject, html) for the "new travel options" email."""
    time_info = f" à {preferred_time} (±1 heure)" if preferred_time else ""
    formatted_date = format_fr_date(travel_date)
    origin_name, destination_name = station_names(origin, destination, new_options)
    route = f"{escape(origin_name)} → {escape(destination_name)}"
    subject = (
        f"Nouvelles options de voyage pour {origin_name} → {destination_name} "
        f"le {formatted_date}{time_info}"
    )

    rows = []
    for index, option in enumerate(new_options):
        row_style = "background-color: #f2f2f2;" if index % 2 == 0 else ""
        rows.append(
            f'<tr style="{row_style}">'
            f'<td style="padding: 8px;">{format_fr_datetime(option.departure_time)}</td>'
            f'<td style="padding: 8px;">{format_fr_datetime(option.arrival_time)}</td>'
            f'<td style="padding: 8px;">{_train_cell(option)}</td>'
            f'<td style="padding: 8px; text-align: center;">{format_duration(option.duration_minutes)}</td>'
            "</tr>"
        )

    body = f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #0078d7; border-bottom: 1px solid #eee; padding-bottom: 10px;">Nouvelles options de voyage disponibles!</h2>
  <div style="background-color: #f9f9f9; padding: 15px; border-radius: 5px; margin: 15px 0;">
    <p><strong>Trajet:</strong> {route}</p>
    <p><strong>Date:</strong> {formatted_date}{escape(time_info)}</p>
  </div>
  <h3 style="color: #333; margin-top: 20px;">Nouvelles options:</h3>
  <table style="width: 100%; border-collapse: collapse; margin: 15px 0;">
    <tr style="background-color: #0078d7; color: white;">
      <th style="text-align: left; padding: 8px;">Départ</th>
      <th style="text-align: left; padding: 8px;">Arrivée</th>
      <th style="text-align: left; padding: 8px;">Train</th>
      <th style="text-align: center; padding: 8px;">Durée</th>
    </tr>
    {"".join(rows)}
  </table>
  <p style="margin-top: 20px;">Réservez vos billets sur <a href="{BOOKING_URL}" style="color: #0078d7;">SNCF Connect</a></p>
  <div style="margin-top: 30px; padding-top: 15px; border-top: 1px solid #eee; font-size: 12px; color: #777;">
    <p>Cet email a été envoyé automatiquement par SNCF Travel Monitor. Vous recevez cette notification car vous vous êtes abonné(e) aux alertes pour ce trajet.</p>
  </div>
</div>"""
    return subject, body


def render_confirmation(
    origin: str,
    destination: str,
    travel_date: date,
    initial_snapshot: Snapshot | None = None,
    preferred_time: str | None = None,
) -> tuple[str, str]:
    """Return (subject, html) for the subscription confirmation email.

    The current options are listed when an initial snapshot is available.
    """
    time_info = f" à {preferred_time} (±1 heure)" if preferred_time else ""
    subject = f"Subscription Confirmed: SNCF Travel Monitor{time_info}"
    options = initial_snapshot.options if initial_snapshot is not None else ()
    origin_name, destination_name = station_names(origin, destination, options)
    preferred = (
        f"<p><strong>Preferred Time:</strong> {escape(preferred_time)} (±1 hour)</p>"
        if preferred_time
        else ""
    )

    parts = [
        "<h2>Your subscription has been confirmed!</h2>",
        "<p>Thank you for using SNCF Travel Monitor!</p>",
        "<p>We will notify you when new travel options become available for:</p>",
        '<div style="margin: 20px; padding: 15px; border: 1px solid #ddd; border-radius: 5px; background-color: #f9f9f9;">',
        f"<p><strong>Route:</strong> {escape(origin_name)} to {escape(destination_name)}</p>",
        f"<p><strong>Date:</strong> {travel_date.isoformat()}</p>",
        preferred,
        "</div>",
    ]

    if options:
        cell = 'style="padding: 8px; text-align: left; border: 1px solid #ddd;"'
        parts.append("<h3>Currently Available Travel Options:</h3>")
        parts.append('<table style="width:100%; border-collapse: collapse;">')
        parts.append(
            '<tr style="background-color: #f2f2f2;">'
            f"<th {cell}>Departure</th><th {cell}>Arrival</th>"
            f"<th {cell}>Train</th><th {cell}>Free Places</th></tr>"
        )
        for option in options:
            parts.append(
                f"<tr><td {cell}>{format_fr_datetime(option.departure_time)}</td>"
                f"<td {cell}>{format_fr_datetime(option.arrival_time)}</td>"
                f"<td {cell}>{_train_cell(option)}</td>"
                f"<td {cell}>{option.free_seats}</td></tr>"
            )
        parts.append("</table>")
    else:
        parts.append(
            "<p>No travel options are currently available for this route and date. "
            "We will notify you when options become available.</p>"
        )

    parts.append("<p>You will receive email notifications when new travel options are found for this route.</p>")
    parts.append("<p>Best regards,<br>SNCF Travel Monitor Team</p>")
    return subject, "\n".join(p for p in parts if p)
