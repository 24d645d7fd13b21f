"""
ITDA — Push Delivery

Fans a notification out to a user's registered Web Push endpoints through an
HTTP push gateway.  The gateway accepts one subscription per request and
answers 404 / 410 for endpoints the browser vendor has expired; those are
returned to the caller so the subscription rows can be removed.

Delivery is best-effort: transport errors are logged per endpoint and never
raised, so a push outage cannot fail the action that triggered it.
"""

from __future__ import annotations

from typing import Any, Iterable

import httpx
import structlog

from app.config import get_settings

logger = structlog.get_logger("itda.push_service")

_EXPIRED_STATUSES = frozenset({404, 410})

# Gateway TTL (seconds) per notification priority.
_PRIORITY_TTL: dict[str, int] = {"high": 3600, "medium": 6 * 3600, "low": 24 * 3600}


class PushService:
    """Thin client for the push gateway.

    An ``httpx.AsyncClient`` may be injected (tests, shared lifespan client);
    otherwise one is opened per :meth:`deliver` call.
    """

    def __init__(self, http_client: httpx.AsyncClient | None = None) -> None:
        settings = get_settings()
        self.gateway_url: str = settings.PUSH_GATEWAY_URL
        self.gateway_token: str = settings.PUSH_GATEWAY_TOKEN
        self.timeout: float = settings.PUSH_TIMEOUT_SECONDS
        self._client = http_client

    @property
    def enabled(self) -> bool:
        return bool(self.gateway_url)

    async def deliver(
        self,
        subscriptions: Iterable[Any],
        title: str,
        body: str,
        metadata: dict | None = None,
        priority: str = "medium",
    ) -> list[str]:
        """Send one push per subscription.

        Parameters
        ----------
        subscriptions:
            Rows or dicts with ``endpoint`` and ``keys``.
        title, body:
            Notification text.
        metadata:
            Extra payload forwarded to the service worker.
        priority:
            ``low`` / ``medium`` / ``high``; maps to gateway urgency and TTL.

        Returns
        -------
        list[str]
            Endpoints the gateway reported as expired.
        """
        subscriptions = list(subscriptions)
        if not subscriptions:
            return []
        if not self.enabled:
            logger.debug("push_disabled", subscriptions=len(subscriptions))
            return []

        headers = {"Content-Type": "application/json"}
        if self.gateway_token:
            headers["Authorization"] = f"Bearer {self.gateway_token}"

        payload = {
            "title": title,
            "body": body,
            "data": metadata or {},
            "urgency": "high" if priority == "high" else "normal",
            "ttl": _PRIORITY_TTL.get(priority, _PRIORITY_TTL["medium"]),
        }

        if self._client is not None:
            return await self._send_all(self._client, subscriptions, payload, headers)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await self._send_all(client, subscriptions, payload, headers)

    async def _send_all(
        self,
        client: httpx.AsyncClient,
        subscriptions: list[Any],
        payload: dict,
        headers: dict[str, str],
    ) -> list[str]:
        expired: list[str] = []
        delivered = 0

        for sub in subscriptions:
            endpoint = sub["endpoint"] if isinstance(sub, dict) else sub.endpoint
            keys = sub["keys"] if isinstance(sub, dict) else sub.keys
            try:
                response = await client.post(
                    self.gateway_url,
                    json={"subscription": {"endpoint": endpoint, "keys": keys}, **payload},
                    headers=headers,
                )
            except httpx.HTTPError as exc:
                logger.warning("push_transport_error", endpoint=endpoint, error=str(exc))
                continue

            if response.status_code in _EXPIRED_STATUSES:
                expired.append(endpoint)
            elif response.status_code >= 400:
                logger.warning(
                    "push_rejected",
                    endpoint=endpoint,
                    status=response.status_code,
                )
            else:
                delivered += 1

        logger.info(
            "push_fanout_complete",
            delivered=delivered,
            expired=len(expired),
            total=len(subscriptions),
        )
        return expired
