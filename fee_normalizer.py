"""Turn raw on-chain fee integers into percentages when the scale is unknown.

Contracts store fees as plain integers out of 100, 1000 or 10000 and
rarely say which.  ``get_pct_smart`` first trusts a per-key preferred
denominator and only falls back to ``best_pct_from_raw`` when that reading
is implausible for the field.
"""

from __future__ import annotations

import math
from typing import Any, Dict, Mapping, Optional

CANDIDATE_DENOMINATORS = (10000, 1000, 100)
MIN_PLAUSIBLE_PCT = 0.01

# Reflect and its slices are plain percent; APY figures are basis points.
KEY_DENOM: Dict[str, int] = {
    "reflect": 100,
    "reflections_percent": 100,
    "reflection_percent": 100,
    "reflection": 100,
    "dev_fee": 100,
    "dev_share": 100,
    "developer_fee": 100,
    "liquidity_fee": 100,
    "auto_lp": 100,
    "auto_lp_share": 100,
    "lp_share": 100,
    "liquidity_share": 100,
    "gamble": 100,
    "gamble_fee": 100,
    "gamble_share": 100,
    "gamble_percent": 100,
    "buy_fee": 100,
    "sell_fee": 100,
    "tax_fee": 100,
    "total_fee": 100,
    "burn_buy": 100,
    "burn_sell": 100,
    "max_daily_pump": 100,
    "apy": 10000,
    "apy_per_epoch": 10000,
}


def _numeric(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    as_float = float(value)
    if not math.isfinite(as_float):
        return None
    return as_float


def best_pct_from_raw(raw: Any, expected_max: float = 25) -> Optional[float]:
    """Pick the most plausible percentage for ``raw`` across 1e4/1e3/1e2 scales.

    Readings inside ``(0, expected_max]`` win; among them the largest (the
    one closest to the ceiling) is chosen.  With no plausible reading the
    largest of all three is returned.
    """

    value = _numeric(raw)
    if value is None:
        return None
    readings = [value * 100 / denom for denom in CANDIDATE_DENOMINATORS]
    within = [p for p in readings if 0 < p <= expected_max + 1e-9]
    return round(max(within or readings), 2)


def guess_denominator(values: Mapping[str, Any]) -> int:
    """Coarse contract-wide scale guess from every numeric mechanism value."""

    nums = [v for v in values.values() if isinstance(v, int) and not isinstance(v, bool)]
    if any(1000 <= v <= 20000 for v in nums):
        return 10000
    if any(100 <= v <= 1000 for v in nums):
        return 1000
    return 100


def get_pct_smart(
    values: Mapping[str, Any],
    key: str,
    expected_max: float,
    default_denom: Optional[int] = 100,
    key_denoms: Optional[Mapping[str, int]] = None,
) -> Optional[float]:
    value = _numeric(values.get(key))
    if value is None:
        return None
    table = KEY_DENOM if key_denoms is None else key_denoms
    preferred = table.get(key) or default_denom or 100
    pct = value * 100 / preferred
    if pct > expected_max or pct < MIN_PLAUSIBLE_PCT:
        alt = best_pct_from_raw(values.get(key), expected_max)
        if alt is not None:
            pct = alt
    return round(pct, 2)


def parse_key_denominators(raw: str) -> Dict[str, int]:
    """Parse ``key=denom,...`` overrides on top of :data:`KEY_DENOM`."""

    table = dict(KEY_DENOM)
    for entry in raw.split(","):
        key, sep, denom = entry.partition("=")
        if not sep or not key.strip():
            continue
        try:
            parsed = int(denom.strip())
        except ValueError:
            continue
        if parsed > 0:
            table[key.strip()] = parsed
    return table


__all__ = [
    "CANDIDATE_DENOMINATORS",
    "MIN_PLAUSIBLE_PCT",
    "KEY_DENOM",
    "best_pct_from_raw",
    "guess_denominator",
    "get_pct_smart",
    "parse_key_denominators",
]
