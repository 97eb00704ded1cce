from __future__ import annotations

from uuid import uuid4

USER_AGENT = "sncf-watch/0.1 (free-places availability monitor)"


def make_headers() -> dict[str, str]:
    """Return the request headers sent with every free-places query.

    x-request-id is freshly generated on every call so a single poll can be
    traced in upstream logs.
    """
    return {
        "Accept": "application/json",
        "Accept-Language": "fr-FR,fr;q=0.9,en-US;q=0.8,en;q=0.7",
        "Cache-Control": "no-cache",
        "User-Agent": USER_AGENT,
        "x-request-id": str(uuid4()),
    }
