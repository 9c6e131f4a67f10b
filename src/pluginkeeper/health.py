"""
Plugin Server Health Gate

Every remote-dependent operation passes through ``HealthGate.require`` before
talking to the server, so an unhealthy server aborts the whole exchange up
front instead of failing halfway through it.
"""

from __future__ import annotations

import logging
from typing import Optional

from pluginkeeper.exceptions import ServerUnavailableError
from pluginkeeper.metrics import KeeperMetrics
from pluginkeeper.remote import RemoteClient

logger = logging.getLogger(__name__)


class HealthGate:
    """Guard remote operations with the server's ``healthcheck`` endpoint.

    Args:
        remote: Client for the plugin server.
        metrics: Optional metrics sink.
    """

    def __init__(self, remote: RemoteClient, metrics: Optional[KeeperMetrics] = None) -> None:
        self._remote = remote
        self._metrics = metrics

    async def check(self) -> bool:
        """Return ``True`` only if the server answers ``{"alive": true}``.

        Never raises: unreachable servers and malformed answers count as
        unhealthy.
        """
        try:
            body = await self._remote.get_json("healthcheck")
        except Exception as exc:
            logger.warning("Plugin server health check failed: %s", exc)
            healthy = False
        else:
            healthy = isinstance(body, dict) and body.get("alive") is True
            if not healthy:
                logger.warning("Plugin server reported an unhealthy state: %r", body)
        if self._metrics is not None:
            self._metrics.record_health_check(healthy)
        return healthy

    async def require(self) -> None:
        """Raise ``ServerUnavailableError`` unless the server is healthy."""
        if not await self.check():
            raise ServerUnavailableError("Plugin server is down or reported an unhealthy state")
