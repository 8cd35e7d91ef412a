"""Outbound delivery of agent responses over an HTTP send-message endpoint."""
from __future__ import annotations

import logging
from typing import List, Optional, Tuple

import httpx

from agentdesk.services.gateways import DeliveryResult

logger = logging.getLogger(__name__)


class LoggingDeliveryGateway:
    """Dry-run delivery that only logs; used when no endpoint is configured."""

    def __init__(self) -> None:
        self.sent: List[Tuple[str, str, str]] = []

    async def send(self, contact_info: str, text: str, attribution: str) -> DeliveryResult:
        logger.info("[%s] -> %s: %s", attribution, contact_info, text)
        self.sent.append((contact_info, text, attribution))
        return DeliveryResult(success=True)


class HttpDeliveryGateway:
    """Posts ``{contactInfo, message, agentName}`` to a messaging endpoint.

    The endpoint counts as successful when it answers 2xx and does not report
    ``"success": false`` in its JSON body. Transport problems are returned as
    failed results, never raised.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._client = client

    async def send(self, contact_info: str, text: str, attribution: str) -> DeliveryResult:
        payload = {"contactInfo": contact_info, "message": text, "agentName": attribution}
        logger.info("Delivery send: url=%s to=%s msg_len=%d", self.url, contact_info, len(text))

        try:
            if self._client is not None:
                resp = await self._client.post(self.url, json=payload, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    resp = await client.post(self.url, json=payload)
        except httpx.TimeoutException:
            logger.error("Delivery timed out for %s", contact_info)
            return DeliveryResult(success=False, error="timeout")
        except httpx.HTTPError as exc:
            logger.error("Delivery error for %s: %s", contact_info, exc)
            return DeliveryResult(success=False, error=str(exc) or exc.__class__.__name__)

        if not 200 <= resp.status_code < 300:
            logger.error("Delivery failed (%d): %s", resp.status_code, resp.text[:300])
            return DeliveryResult(success=False, error=f"http_{resp.status_code}")

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if isinstance(data, dict) and data.get("success") is False:
            error = data.get("error") or "delivery_rejected"
            logger.error("Delivery rejected for %s: %s", contact_info, error)
            return DeliveryResult(success=False, error=str(error))

        logger.info("Message delivered to %s (status=%d)", contact_info, resp.status_code)
        return DeliveryResult(success=True)
