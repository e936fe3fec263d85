import unittest

from eth_utils import to_checksum_address

from fake_chain import PAIR, TOKEN, TX_HASH
from launch_messages import (
    fmt_native_short,
    fmt_usd,
    render_catalog_launch,
    render_launch_message,
    render_lock_message,
    token_buttons,
)
from launch_metrics import LaunchMetrics, SpecsBreakdown
from receipt_correlator import LaunchFact, LockFact


def _fact(name="A&B <Token>", symbol="AB"):
    return LaunchFact(token=TOKEN, transaction_hash=TX_HASH, name=name, symbol=symbol, pair=PAIR)


class FormatTests(unittest.TestCase):
    def test_fmt_usd(self):
        self.assertEqual(fmt_usd(999.5), "999.50")
        self.assertEqual(fmt_usd(12345.4), "12,345")
        self.assertEqual(fmt_usd(2_500_000), "2.50M")

    def test_fmt_native_short(self):
        self.assertEqual(fmt_native_short(1.234), "1.23")
        self.assertEqual(fmt_native_short(0.123456), "0.1235")

    def test_token_buttons_use_checksum_address(self):
        buttons = token_buttons("https://ethos.vision/?t={CA}", "Open in EthOS", TOKEN)
        self.assertEqual(
            buttons,
            [[{"text": "Open in EthOS", "url": f"https://ethos.vision/?t={to_checksum_address(TOKEN)}"}]],
        )
        self.assertEqual(token_buttons("https://e/?t={CA}", "Open", None)[0][0]["url"], "https://e/?t=")


class LaunchMessageTests(unittest.TestCase):
    def test_full_message(self):
        metrics = LaunchMetrics(
            dev_hold_pct=5.0, liquidity_native=2.0, liquidity_usd=8000.0, fdv_native=4.0, fdv_usd=8000.0
        )
        specs = SpecsBreakdown(
            antibot=True,
            reflect_pct=5.0,
            auto_lp_pct=40.0,
            reward_pct=40.0,
            gamble_pct=10.0,
            dev_pct=10.0,
            gamble_period_hours=6,
            reaper_period_hours=2.0,
        )
        html = render_launch_message(_fact(), metrics, {"twitter": "https://x.com/ab"}, specs)

        self.assertTrue(html.startswith("<b>🚀 New EOS20 Token Created</b>\n"))
        self.assertIn(f"CA: <code>{to_checksum_address(TOKEN)}</code>", html)
        self.assertIn("Name: <b>A&amp;B &lt;Token&gt;</b>", html)
        self.assertIn("Ticker: <b>AB</b>", html)
        self.assertIn('<a href="https://x.com/ab">X (Twitter)</a>', html)
        self.assertIn("Dev Hold: <b>5.00%</b>", html)
        self.assertIn("LP: <b>~$8,000 (2.00 ETH)</b>", html)
        self.assertIn("FDV (mcap): <b>~$8,000</b>", html)
        self.assertIn("<b>Specs Mechanisms:</b>\nAnti-bot: ON\nReflect: 5.00%", html)
        self.assertIn("• ETH Reward: 40.00% of reflect", html)
        self.assertIn("• Gamble: 10.00% of reflect (period: 6 h)", html)
        self.assertIn("Reaper period: 2.0 h", html)

    def test_missing_rate_shows_native_figures(self):
        metrics = LaunchMetrics(
            dev_hold_pct=0.0, liquidity_native=0.5, liquidity_usd=0.0, fdv_native=0.25, fdv_usd=0.0
        )
        html = render_launch_message(_fact(symbol=""), metrics, {}, SpecsBreakdown(), "ETH")

        self.assertIn("Ticker: \n", html)
        self.assertIn("Dev Hold: <b>0.00%</b>", html)
        self.assertIn("LP: <b>0.5000 ETH</b>", html)
        self.assertIn("FDV (mcap): <b>0.25 ETH</b>", html)
        self.assertNotIn("$", html)
        self.assertNotIn("Specs Mechanisms", html)

    def test_no_liquidity_lines_when_unknown(self):
        metrics = LaunchMetrics(0.0, 0.0, 0.0, 0.0, 0.0)
        html = render_launch_message(_fact(), metrics, {}, SpecsBreakdown())
        self.assertNotIn("LP:", html)
        self.assertNotIn("FDV", html)


class LockMessageTests(unittest.TestCase):
    def test_lock_with_address(self):
        self.assertEqual(
            render_lock_message(LockFact(TOKEN, TX_HASH)),
            f"🔒 <code>{to_checksum_address(TOKEN)}</code>\n<b>Settings locked forever</b>",
        )

    def test_lock_without_address(self):
        self.assertEqual(render_lock_message(LockFact(None, TX_HASH)), "🔒 <b>Settings locked forever</b>")


class CatalogLaunchMessageTests(unittest.TestCase):
    def test_short_message(self):
        html = render_catalog_launch(TOKEN, "Moon", "MOON")
        self.assertEqual(
            html,
            "<b>🚀 New EOS20 Token Created</b>\n"
            f"CA: <code>{to_checksum_address(TOKEN)}</code>\n"
            "Name: <b>Moon</b>\n"
            "Ticker: <b>MOON</b>",
        )


if __name__ == "__main__":
    unittest.main()
