"""Deliver alerts through the Telegram Bot API ``sendMessage`` endpoint."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional

import aiohttp

logger = logging.getLogger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org"


class NotificationError(RuntimeError):
    """Telegram rejected or never received a message."""


class TelegramNotifier:
    def __init__(self, bot_token: str, chat_id: str, *, timeout: float = 12.0):
        self.chat_id = str(chat_id)
        self.base_url = f"{TELEGRAM_API_BASE}/bot{bot_token}"
        self.timeout = timeout

    def _payload(self, html: str, buttons: Optional[List[List[Dict[str, str]]]]) -> Dict:
        payload = {
            "chat_id": self.chat_id,
            "text": html,
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        if buttons:
            payload["reply_markup"] = {"inline_keyboard": buttons}
        return payload

    async def _post(self, payload: Dict) -> None:
        url = f"{self.base_url}/sendMessage"
        async with aiohttp.ClientSession(
            trust_env=True, timeout=aiohttp.ClientTimeout(total=self.timeout)
        ) as session:
            async with session.post(url, json=payload) as resp:
                body = await resp.json(content_type=None)
                if not (isinstance(body, dict) and body.get("ok")):
                    description = body.get("description") if isinstance(body, dict) else body
                    raise NotificationError(f"HTTP {resp.status}: {description}")

    async def send(self, html: str, buttons: Optional[List[List[Dict[str, str]]]] = None) -> bool:
        """Post ``html`` to the configured chat; ``False`` when delivery failed."""

        try:
            await self._post(self._payload(html, buttons))
        except (NotificationError, aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            logger.error("Telegram send failed: %s", str(exc) or type(exc).__name__)
            return False
        return True


__all__ = ["NotificationError", "TelegramNotifier"]
