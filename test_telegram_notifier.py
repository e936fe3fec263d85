import unittest
from unittest.mock import AsyncMock, patch

import aiohttp

from telegram_notifier import NotificationError, TelegramNotifier


class TelegramNotifierTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.notifier = TelegramNotifier("123:abc", -100200)

    def test_payload_shape(self):
        buttons = [[{"text": "Open", "url": "https://ethos.vision/?t=0x1"}]]
        payload = self.notifier._payload("<b>hi</b>", buttons)
        self.assertEqual(
            payload,
            {
                "chat_id": "-100200",
                "text": "<b>hi</b>",
                "parse_mode": "HTML",
                "disable_web_page_preview": True,
                "reply_markup": {"inline_keyboard": buttons},
            },
        )
        self.assertNotIn("reply_markup", self.notifier._payload("plain", None))
        self.assertEqual(self.notifier.base_url, "https://api.telegram.org/bot123:abc")

    async def test_send_success(self):
        with patch.object(self.notifier, "_post", new=AsyncMock()) as post:
            self.assertTrue(await self.notifier.send("hello"))
        post.assert_awaited_once()
        self.assertEqual(post.await_args.args[0]["text"], "hello")

    async def test_send_failure_is_reported_not_raised(self):
        for error in (NotificationError("HTTP 400: chat not found"), aiohttp.ClientError()):
            with patch.object(self.notifier, "_post", new=AsyncMock(side_effect=error)):
                with self.assertLogs("telegram_notifier", level="ERROR"):
                    self.assertFalse(await self.notifier.send("hello"))


if __name__ == "__main__":
    unittest.main()
