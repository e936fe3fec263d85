"""Numbers shown in a launch alert: holdings, liquidity, FDV and fee specs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from fee_normalizer import get_pct_smart, guess_denominator
from mechanism_probe import MechanismSnapshot
from receipt_correlator import LaunchFact

WEI_PER_NATIVE = 10 ** 18

REFLECT_KEYS = ("reflect", "reflections_percent", "reflection_percent", "reflection")
AUTO_LP_KEYS = ("auto_lp_share", "liquidity_fee", "lp_share", "liquidity_share")
GAMBLE_KEYS = ("gamble", "gamble_fee", "gamble_share", "gamble_percent")
DEV_KEYS = ("dev_fee", "dev_share", "developer_fee")

REFLECT_CEILING = 25
SLICE_CEILING = 100
BURN_CEILING = 25
PUMP_CEILING = 300
APY_CEILING = 100


@dataclass(frozen=True)
class LaunchMetrics:
    dev_hold_pct: float
    liquidity_native: float
    liquidity_usd: float
    fdv_native: float
    fdv_usd: float


@dataclass(frozen=True)
class SpecsBreakdown:
    antibot: Optional[bool] = None
    reflect_pct: Optional[float] = None
    auto_lp_pct: Optional[float] = None
    reward_pct: Optional[float] = None
    gamble_pct: Optional[float] = None
    dev_pct: Optional[float] = None
    gamble_period_hours: Optional[int] = None
    burn_buy_pct: Optional[float] = None
    burn_sell_pct: Optional[float] = None
    max_daily_pump_pct: Optional[float] = None
    reaper_period_hours: Optional[float] = None
    apy_day_pct: Optional[float] = None

    @property
    def is_empty(self) -> bool:
        return all(value is None for value in self.__dict__.values())


def compute_launch_metrics(fact: LaunchFact, native_usd: float) -> LaunchMetrics:
    """Derive the money figures for ``fact`` at a native/USD rate (0 = unknown)."""

    dev_hold_pct = 0.0
    if fact.total_supply > 0:
        dev_hold_pct = fact.dev_amount / fact.total_supply * 100

    liquidity_native = fact.lp_native_wei / WEI_PER_NATIVE
    # one known side of a balanced pool, doubled
    liquidity_usd = liquidity_native * native_usd * 2 if native_usd > 0 else 0.0

    fdv_native = 0.0
    if fact.lp_token_amount > 0 and fact.lp_native_wei > 0 and fact.total_supply > 0:
        fdv_wei = fact.total_supply * fact.lp_native_wei // fact.lp_token_amount
        fdv_native = fdv_wei / WEI_PER_NATIVE
    fdv_usd = fdv_native * native_usd if native_usd > 0 else 0.0

    return LaunchMetrics(
        dev_hold_pct=dev_hold_pct,
        liquidity_native=liquidity_native,
        liquidity_usd=liquidity_usd,
        fdv_native=fdv_native,
        fdv_usd=fdv_usd,
    )


def _first_pct(
    values: Mapping, keys: Sequence[str], ceiling: float, denom: int, key_denoms
) -> Optional[float]:
    for key in keys:
        pct = get_pct_smart(values, key, ceiling, denom, key_denoms)
        if pct is not None:
            return pct
    return None


def _raw_uint(values: Mapping, key: str) -> Optional[int]:
    value = values.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def build_specs(
    snapshot: MechanismSnapshot, key_denoms: Optional[Mapping[str, int]] = None
) -> SpecsBreakdown:
    values = snapshot.values
    if not values:
        return SpecsBreakdown()
    denom = snapshot.denominator or guess_denominator(values)

    reflect = _first_pct(values, REFLECT_KEYS, REFLECT_CEILING, denom, key_denoms)
    auto_lp = _first_pct(values, AUTO_LP_KEYS, SLICE_CEILING, denom, key_denoms)
    gamble = _first_pct(values, GAMBLE_KEYS, SLICE_CEILING, denom, key_denoms)
    dev = _first_pct(values, DEV_KEYS, SLICE_CEILING, denom, key_denoms)

    reward = None
    if reflect is not None:
        used = (auto_lp or 0) + (gamble or 0) + (dev or 0)
        reward = max(0.0, round(100 - used, 2))

    antibot = values.get("antibot")
    reaper_seconds = _raw_uint(values, "death_time") or _raw_uint(values, "reaper_period")
    gamble_hours = _raw_uint(values, "gamble_period")

    return SpecsBreakdown(
        antibot=antibot if isinstance(antibot, bool) else None,
        reflect_pct=reflect,
        auto_lp_pct=auto_lp,
        reward_pct=reward,
        gamble_pct=gamble,
        dev_pct=dev,
        gamble_period_hours=gamble_hours or None,
        burn_buy_pct=get_pct_smart(values, "burn_buy", BURN_CEILING, denom, key_denoms),
        burn_sell_pct=get_pct_smart(values, "burn_sell", BURN_CEILING, denom, key_denoms),
        max_daily_pump_pct=get_pct_smart(values, "max_daily_pump", PUMP_CEILING, denom, key_denoms),
        reaper_period_hours=reaper_seconds / 3600 if reaper_seconds else None,
        apy_day_pct=get_pct_smart(values, "apy", APY_CEILING, denom, key_denoms),
    )


__all__ = [
    "LaunchMetrics",
    "SpecsBreakdown",
    "compute_launch_metrics",
    "build_specs",
]
