"""Probe a launched token for its fee and mechanism parameters.

Launchpad templates expose the same knobs under many names.  Each key is
tried against a short list of zero-argument getters, then three-slot
split tuples, then mapping getters keyed by the key name itself.  The
first value found for a key is kept.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence, Tuple, Union

from contract_calls import (
    MappingGetter,
    ViewCall,
    bool_getter,
    first_success,
    parse_mapping_getters,
    try_bool,
    try_mapping_bool,
    try_mapping_uint,
    try_tuple,
    try_uint,
    uint_getter,
)
from launch_config import (
    DEFAULT_MECH_BOOL_KEYS,
    DEFAULT_MECH_MAPPING_BOOL_FUNCS,
    DEFAULT_MECH_MAPPING_UINT_FUNCS,
    DEFAULT_MECH_UINT_KEYS,
)

logger = logging.getLogger(__name__)

MechanismValue = Union[int, bool]

BOOL_PROBES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("antibot", ("antiBotEnabled", "isAntiBotEnabled", "drainIsForbidden")),
    ("trading_enabled", ("tradingEnabled", "isTradingEnabled", "tradingOpen")),
    ("reflect_enabled", ("reflectionEnabled", "reflectionsEnabled", "isReflectionEnabled")),
    ("eth_reflect", ("ethReflectionEnabled", "ethReflectEnabled")),
    ("gamble_enabled", ("gambleEnabled", "gamble")),
)

UINT_PROBES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("reflect", ("reflect", "reflection", "reflectionPercent", "reflectionsPercent", "reflectPercent")),
    ("auto_lp_share", ("autoLPShare", "lpShare", "autoLiquidityFee", "liquidityFee", "liquidityShare")),
    ("gamble", ("gambleFee", "gambleRate", "gambleShare", "gamblePercent")),
    ("dev_fee", ("devFee", "developerFee", "devShare")),
    ("burn_buy", ("burnPercentageBuy", "buyBurn")),
    ("burn_sell", ("burnPercentageSell", "sellBurn")),
    ("max_daily_pump", ("maxDailyPumpRate", "pumpRate")),
    ("death_time", ("deathTime", "reaperPeriod")),
    ("gamble_period", ("gamblePeriod", "gambleHours")),
    ("apy", ("apy",)),
    ("apy_per_epoch", ("apyPerEpoch",)),
    ("max_wallet", ("maxWallet", "maxWalletAmount")),
    ("max_tx", ("maxTxAmount", "maxTransactionAmount")),
)

SPLIT_KEYS: Tuple[str, ...] = ("auto_lp_share", "gamble", "dev_fee")
SPLIT_GETTERS: Tuple[ViewCall, ...] = tuple(
    ViewCall(name, (), ("uint256", "uint256", "uint256"))
    for name in ("getReflectSplits", "reflectSplits", "reflectShares")
)
DENOMINATOR_GETTERS: Tuple[str, ...] = ("feeDenominator", "FEE_DENOMINATOR", "denominator")


@dataclass
class MechanismSnapshot:
    values: Dict[str, MechanismValue] = field(default_factory=dict)
    denominator: Optional[int] = None

    def offer(self, key: str, value: Optional[MechanismValue]) -> bool:
        """Record ``value`` under ``key`` unless one is already known."""

        if value is None or key in self.values:
            return False
        self.values[key] = value
        return True

    def __bool__(self) -> bool:
        return bool(self.values)


async def read_fee_denominator(chain, token: str) -> Optional[int]:
    for name in DENOMINATOR_GETTERS:
        value = await try_uint(chain, token, uint_getter(name))
        if value is not None and value > 0:
            return value
    return None


async def read_mechanisms(
    chain,
    token: str,
    *,
    uint_keys: Sequence[str] = DEFAULT_MECH_UINT_KEYS,
    bool_keys: Sequence[str] = DEFAULT_MECH_BOOL_KEYS,
    uint_mapping_funcs: Sequence[MappingGetter] = parse_mapping_getters(DEFAULT_MECH_MAPPING_UINT_FUNCS),
    bool_mapping_funcs: Sequence[MappingGetter] = parse_mapping_getters(DEFAULT_MECH_MAPPING_BOOL_FUNCS),
) -> MechanismSnapshot:
    snapshot = MechanismSnapshot()

    for key, names in BOOL_PROBES:
        snapshot.offer(
            key,
            await first_success((lambda n=n: try_bool(chain, token, bool_getter(n))) for n in names),
        )

    for key, names in UINT_PROBES:
        snapshot.offer(
            key,
            await first_success((lambda n=n: try_uint(chain, token, uint_getter(n))) for n in names),
        )

    for call in SPLIT_GETTERS:
        split = await try_tuple(chain, token, call, SPLIT_KEYS)
        for key, value in split.items():
            if isinstance(value, int) and not isinstance(value, bool):
                snapshot.offer(key, value)

    for getter in uint_mapping_funcs:
        for key in uint_keys:
            if key in snapshot.values:
                continue
            snapshot.offer(key, await try_mapping_uint(chain, token, getter, key))

    for getter in bool_mapping_funcs:
        for key in bool_keys:
            if key in snapshot.values:
                continue
            snapshot.offer(key, await try_mapping_bool(chain, token, getter, key))

    snapshot.denominator = await read_fee_denominator(chain, token)
    logger.debug(
        "mechanisms for %s: %s (denominator=%s)", token, snapshot.values, snapshot.denominator
    )
    return snapshot


__all__ = [
    "MechanismSnapshot",
    "BOOL_PROBES",
    "UINT_PROBES",
    "SPLIT_GETTERS",
    "read_fee_denominator",
    "read_mechanisms",
]
