from __future__ import annotations


class SncfWatchError(Exception):
    """Base exception for all SNCF travel watch errors."""


class FetchError(SncfWatchError):
    """Raised when the availability feed cannot be fetched or parsed.

    status_code is set when the upstream answered with a non-2xx status and is
    None for transport failures, timeouts and unparseable bodies.
    """

    def __init__(self, message: str = "", status_code: int | None = None) -> None:
        self.status_code = status_code
        if not message:
            message = (
                f"Upstream API error ({status_code})"
                if status_code is not None
                else "Availability fetch failed"
            )
        super().__init__(message)


class NotifyError(SncfWatchError):
    """Raised when an email cannot be handed to the mail transport."""


class StoreError(SncfWatchError):
    """Raised when the subscription or snapshot storage cannot be read or written."""


class SubscriptionExistsError(SncfWatchError):
    """Raised when adding a subscription whose five identity fields already exist."""


class SubscriptionNotFoundError(SncfWatchError):
    """Raised when removing a subscription that does not match any stored one."""


class ValidationError(SncfWatchError):
    """Raised when input parameters fail validation before any network call."""
