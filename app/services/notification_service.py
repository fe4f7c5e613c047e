"""Outbound email notifications delivered through a webhook."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Set

import httpx

from app.config.settings import (
    NOTIFICATION_SENDER,
    NOTIFICATION_TIMEOUT_SECONDS,
    NOTIFICATION_WEBHOOK_URL,
)
from app.services.errors import UpstreamError

logger = logging.getLogger(__name__)

_background_tasks: Set["asyncio.Task[bool]"] = set()


class NotificationDispatcher:
    """Posts email payloads to the configured delivery webhook."""

    def __init__(
        self,
        webhook_url: Optional[str] = NOTIFICATION_WEBHOOK_URL,
        *,
        sender: str = NOTIFICATION_SENDER,
        timeout: float = NOTIFICATION_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.webhook_url = webhook_url
        self.sender = sender
        self.timeout = timeout
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.webhook_url)

    async def send_email(self, to: str, subject: str, body: str) -> bool:
        """Return ``True`` once the webhook accepted the message."""

        if not self.configured:
            logger.info("Notification webhook not configured; skipping email", extra={"subject": subject})
            return False

        payload = {"from": self.sender, "to": to, "subject": subject, "text": body}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.webhook_url, json=payload)
        except httpx.HTTPError as exc:
            logger.error("Notification webhook unreachable: %s", exc)
            raise UpstreamError("The notification service is unreachable.") from exc

        if not response.is_success:
            logger.error(
                "Notification webhook rejected email",
                extra={"status": response.status_code, "subject": subject},
            )
            raise UpstreamError(f"The notification service answered {response.status_code}.")
        return True

    def dispatch_in_background(self, to: str, subject: str, body: str) -> "asyncio.Task[bool]":
        """Schedule ``send_email`` without letting its failure reach the caller."""

        task = asyncio.create_task(self._send_quietly(to, subject, body))
        _background_tasks.add(task)
        task.add_done_callback(_background_tasks.discard)
        return task

    async def _send_quietly(self, to: str, subject: str, body: str) -> bool:
        try:
            return await self.send_email(to, subject, body)
        except Exception:
            logger.exception("Background email delivery failed", extra={"subject": subject})
            return False


def get_notification_dispatcher() -> NotificationDispatcher:
    return NotificationDispatcher()


__all__ = ["NotificationDispatcher", "get_notification_dispatcher"]
