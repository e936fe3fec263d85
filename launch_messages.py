"""HTML rendering of launch and lock alerts for Telegram."""

from __future__ import annotations

import html
from typing import Dict, List, Optional

from eth_utils import to_checksum_address

from launch_metrics import LaunchMetrics, SpecsBreakdown
from receipt_correlator import LaunchFact, LockFact
from social_discovery import socials_line

LAUNCH_HEADER = "<b>🚀 New EOS20 Token Created</b>"
LOCK_TEXT = "<b>Settings locked forever</b>"

Buttons = List[List[Dict[str, str]]]


def fmt_usd(value: float) -> str:
    if value < 1000:
        return f"{value:.2f}"
    if value < 1_000_000:
        return f"{value:,.0f}"
    return f"{value / 1e6:.2f}M"


def fmt_native_short(value: float) -> str:
    return f"{value:.2f}" if value >= 1 else f"{value:.4f}"


def _fmt_native_precise(value: float) -> str:
    return f"{value:.12f}".rstrip("0").rstrip(".")


def _display_address(address: Optional[str]) -> str:
    if not address:
        return ""
    try:
        return to_checksum_address(address)
    except ValueError:
        return address


def token_buttons(url_template: str, label: str, token: Optional[str]) -> Buttons:
    url = url_template.replace("{CA}", _display_address(token))
    return [[{"text": label, "url": url}]]


def _pct(value: float) -> str:
    return f"{value:.2f}%"


def specs_lines(specs: SpecsBreakdown, native_symbol: str = "ETH") -> List[str]:
    lines: List[str] = []
    if specs.antibot is not None:
        lines.append(f"Anti-bot: {'ON' if specs.antibot else 'OFF'}")
    if specs.reflect_pct is not None:
        lines.append(f"Reflect: {_pct(specs.reflect_pct)}")
        if specs.auto_lp_pct is not None:
            lines.append(f"• Auto LP: {_pct(specs.auto_lp_pct)} of reflect")
        if specs.reward_pct is not None:
            lines.append(f"• {native_symbol} Reward: {_pct(specs.reward_pct)} of reflect")
        if specs.gamble_pct is not None:
            period = f" (period: {specs.gamble_period_hours} h)" if specs.gamble_period_hours else ""
            lines.append(f"• Gamble: {_pct(specs.gamble_pct)} of reflect{period}")
        if specs.dev_pct is not None:
            lines.append(f"• Dev Fee: {_pct(specs.dev_pct)} of reflect")
    if specs.burn_buy_pct is not None:
        lines.append(f"Burn (Buy): {_pct(specs.burn_buy_pct)}")
    if specs.burn_sell_pct is not None:
        lines.append(f"Burn (Sell): {_pct(specs.burn_sell_pct)}")
    if specs.max_daily_pump_pct is not None:
        lines.append(f"Max Daily Pump: {_pct(specs.max_daily_pump_pct)}")
    if specs.reaper_period_hours is not None:
        lines.append(f"Reaper period: {specs.reaper_period_hours:.1f} h")
    if specs.apy_day_pct is not None:
        lines.append(f"APY / day: {_pct(specs.apy_day_pct)}")
    return lines


def render_launch_message(
    fact: LaunchFact,
    metrics: LaunchMetrics,
    socials: Dict[str, str],
    specs: SpecsBreakdown,
    native_symbol: str = "ETH",
) -> str:
    symbol = html.escape(native_symbol)
    header = [
        LAUNCH_HEADER,
        f"CA: <code>{_display_address(fact.token)}</code>",
        f"Name: <b>{html.escape(fact.name or '')}</b>",
        f"Ticker: <b>{html.escape(fact.symbol)}</b>" if fact.symbol else "Ticker: ",
        socials_line(socials),
    ]

    middle = [f"Dev Hold: <b>{metrics.dev_hold_pct:.2f}%</b>"]
    if metrics.liquidity_usd > 0:
        middle.append(
            f"LP: <b>~${fmt_usd(metrics.liquidity_usd)} "
            f"({fmt_native_short(metrics.liquidity_native)} {symbol})</b>"
        )
    elif metrics.liquidity_native > 0:
        middle.append(f"LP: <b>{fmt_native_short(metrics.liquidity_native)} {symbol}</b>")
    if metrics.fdv_usd > 0:
        middle.append(f"FDV (mcap): <b>~${fmt_usd(metrics.fdv_usd)}</b>")
    elif metrics.fdv_native > 0:
        middle.append(f"FDV (mcap): <b>{_fmt_native_precise(metrics.fdv_native)} {symbol}</b>")

    lines = specs_lines(specs, symbol)
    specs_block = "<b>Specs Mechanisms:</b>\n" + "\n".join(lines) if lines else ""

    return "\n".join(
        ["\n".join(part for part in header if part), "", "\n".join(middle), "", specs_block]
    ).rstrip()


def render_lock_message(lock: LockFact) -> str:
    if lock.contract_address:
        return f"🔒 <code>{_display_address(lock.contract_address)}</code>\n{LOCK_TEXT}"
    return f"🔒 {LOCK_TEXT}"


def render_catalog_launch(token: Optional[str], name: str, symbol: str) -> str:
    """Shorter alert used when the launchpad's ABI decoded the creation event."""

    lines = [LAUNCH_HEADER]
    if token:
        lines.append(f"CA: <code>{_display_address(token)}</code>")
    if name or symbol:
        lines.append(f"Name: <b>{html.escape(name or '')}</b>")
    lines.append(f"Ticker: <b>{html.escape(symbol)}</b>" if symbol else "Ticker: ")
    return "\n".join(lines)


__all__ = [
    "fmt_usd",
    "fmt_native_short",
    "token_buttons",
    "specs_lines",
    "render_launch_message",
    "render_lock_message",
    "render_catalog_launch",
]
