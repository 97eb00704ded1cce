from __future__ import annotations

from dataclasses import dataclass

import httpx
from mcp.server.fastmcp import FastMCP

from sncf_watch.application.availability_service import AvailabilityService
from sncf_watch.application.poll_loop import PollLoop
from sncf_watch.application.subscription_service import SubscriptionService
from sncf_watch.infrastructure.email_notifier import EmailNotifier
from sncf_watch.infrastructure.pacing import Pacer
from sncf_watch.infrastructure.settings import Settings
from sncf_watch.infrastructure.sncf_client import SncfClient
from sncf_watch.infrastructure.stores import JsonSnapshotStore, JsonSubscriptionStore
from sncf_watch.mcp.tools import register_tools


@dataclass
class Services:
    subscription_svc: SubscriptionService
    poll_loop: PollLoop
    pacer: Pacer
    client: SncfClient


def create_services(settings: Settings) -> Services:
    """Wire stores, upstream client, notifier, poll loop and subscription service."""
    http_client = httpx.AsyncClient(timeout=settings.request_timeout, follow_redirects=True)
    client = SncfClient(http_client, base_url=settings.sncf_base_url)
    availability = AvailabilityService(client)
    notifier = EmailNotifier(settings)
    subscriptions = JsonSubscriptionStore(settings.subscriptions_path)
    snapshots = JsonSnapshotStore(settings.snapshots_dir)
    pacer = Pacer()

    poll_loop = PollLoop(
        subscriptions,
        snapshots,
        availability,
        notifier,
        pacer,
        pacing_delay=settings.poll_delay_seconds,
        idle_wait=settings.idle_wait_seconds,
        fetch_timeout=settings.fetch_timeout,
        notify_timeout=settings.notify_timeout,
        restart_on_crash=settings.restart_on_crash,
    )
    subscription_svc = SubscriptionService(subscriptions, snapshots, availability, notifier)
    return Services(
        subscription_svc=subscription_svc, poll_loop=poll_loop, pacer=pacer, client=client
    )


def create_mcp_app(subscription_svc: SubscriptionService) -> FastMCP:
    """Create and configure the FastMCP application exposing the subscription tools."""
    mcp = FastMCP("SNCF Travel Watch", stateless_http=True)
    register_tools(mcp, subscription_svc)
    return mcp
