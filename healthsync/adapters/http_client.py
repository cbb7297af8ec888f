"""Shared async HTTP client for the SDK API.

One AsyncClient per SDK instance; its base URL follows the configured
environment. Tests pass an ``httpx.MockTransport`` instead of the network.
"""

import httpx

from shared.config import Settings, settings


def build_client(
    config: Settings = settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=config.api_base_url,
        timeout=config.request_timeout_seconds,
        headers={"Content-Type": "application/json"},
        transport=transport,
    )
