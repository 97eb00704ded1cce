from __future__ import annotations

import dataclasses
import json
import logging

from mcp import types
from mcp.server.fastmcp import FastMCP

from sncf_watch.application.subscription_service import SubscriptionService
from sncf_watch.domain.exceptions import (
    FetchError,
    StoreError,
    SubscriptionExistsError,
    SubscriptionNotFoundError,
    ValidationError,
)
from sncf_watch.infrastructure.stores import subscription_to_dict

logger = logging.getLogger(__name__)

_RESULT_URI = "mcp://sncf-watch/result"


def _as_resource(json_str: str) -> list[types.EmbeddedResource]:
    """Wrap a JSON string as an embedded resource so the LLM does not narrate it."""
    return [
        types.EmbeddedResource(
            type="resource",
            resource=types.TextResourceContents(
                uri=_RESULT_URI,  # type: ignore[arg-type]
                mimeType="application/json",
                text=json_str,
            ),
        )
    ]


def _error_json(message: str) -> str:
    return json.dumps({"error": message}, ensure_ascii=False)


def _ok_json(payload: dict) -> str:  # type: ignore[type-arg]
    return json.dumps(payload, default=str, ensure_ascii=False)


def _handle_exception(exc: Exception) -> list[types.EmbeddedResource]:
    if isinstance(exc, (ValidationError, SubscriptionExistsError, SubscriptionNotFoundError)):
        return _as_resource(_error_json(str(exc)))
    if isinstance(exc, FetchError):
        if exc.status_code is not None and exc.status_code >= 500:
            return _as_resource(
                _error_json(f"Upstream API error ({exc.status_code}). Please try again later.")
            )
        return _as_resource(_error_json(f"Could not fetch availability: {exc}"))
    if isinstance(exc, StoreError):
        logger.error("Storage error in MCP tool: %s", exc)
        return _as_resource(_error_json("Subscription storage is unavailable."))
    logger.exception("Unexpected error in MCP tool: %s", exc)
    return _as_resource(_error_json("An unexpected error occurred."))


def register_tools(mcp: FastMCP, subscription_svc: SubscriptionService) -> None:
    """Bind all @mcp.tool decorators. Called once during server setup."""

    @mcp.tool()
    async def subscribe(
        email: str,
        origin: str,
        destination: str,
        date: str,
        preferred_time: str | None = None,
    ) -> list[types.EmbeddedResource]:
        """Subscribe an email address to new train options on a route and day.

        A confirmation email listing the options available right now is sent
        immediately; later emails only announce options that appear afterwards.

        Args:
            email: Address that receives the notifications.
            origin: Origin station code, e.g. "FRPST" (Paris).
            destination: Destination station code, e.g. "FRRHE" (Rennes).
            date: Travel date as YYYY-MM-DD.
            preferred_time: Optional departure time HH:MM; only trains leaving
                            within one hour of it are reported.
        """
        try:
            result = await subscription_svc.subscribe(
                email, origin, destination, date, preferred_time
            )
            return _as_resource(
                _ok_json(
                    {
                        "message": "Subscription added successfully.",
                        "subscription": subscription_to_dict(result.subscription),
                        "initialCheckOk": result.initial_check_ok,
                        "confirmationSent": result.confirmation_sent,
                        "currentOptions": [dataclasses.asdict(o) for o in result.initial_options],
                    }
                )
            )
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def list_subscriptions(email: str | None = None) -> list[types.EmbeddedResource]:
        """List active subscriptions, optionally only those of one email address.

        Args:
            email: Optional address to filter on (case-insensitive).
        """
        try:
            subs = await subscription_svc.list_subscriptions(email)
            return _as_resource(
                _ok_json(
                    {
                        "subscriptions": [subscription_to_dict(s) for s in subs],
                        "count": len(subs),
                    }
                )
            )
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def unsubscribe(
        email: str,
        origin: str,
        destination: str,
        date: str,
        preferred_time: str | None = None,
    ) -> list[types.EmbeddedResource]:
        """Delete a subscription. All fields must match the stored subscription.

        Args:
            email: Subscribed address.
            origin: Origin station code.
            destination: Destination station code.
            date: Travel date as YYYY-MM-DD.
            preferred_time: Preferred time HH:MM if the subscription has one.
        """
        try:
            sub = await subscription_svc.unsubscribe(
                email, origin, destination, date, preferred_time
            )
            return _as_resource(
                _ok_json(
                    {
                        "message": "Subscription deleted successfully.",
                        "subscription": subscription_to_dict(sub),
                    }
                )
            )
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def check_availability(
        origin: str,
        destination: str,
        date: str,
        preferred_time: str | None = None,
    ) -> list[types.EmbeddedResource]:
        """Show the free-places options currently offered on a route and day.

        Args:
            origin: Origin station code.
            destination: Destination station code.
            date: Travel date as YYYY-MM-DD.
            preferred_time: Optional HH:MM; keeps departures within one hour of it.
        """
        try:
            options = await subscription_svc.check_availability(
                origin, destination, date, preferred_time
            )
            return _as_resource(
                _ok_json(
                    {
                        "options": [dataclasses.asdict(o) for o in options],
                        "count": len(options),
                    }
                )
            )
        except Exception as exc:
            return _handle_exception(exc)
