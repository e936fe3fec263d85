"""Environment-driven configuration for the launchpad watcher.

Everything is read once at startup.  Missing required settings raise
:class:`ConfigError` so the entry point can exit before touching the
chain; every candidate list used by the contract probes can be replaced
from the environment without code changes.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

from eth_utils import is_address

from contract_calls import MappingGetter, parse_mapping_getters
from fee_normalizer import KEY_DENOM, parse_key_denominators


class ConfigError(ValueError):
    """Raised for missing or malformed startup configuration."""


DEFAULT_SOCIAL_KEYS: Tuple[str, ...] = ("website", "twitter", "telegram", "discord")
DEFAULT_SOCIALS_MAPPING_FUNCS = "links,socials,urls,linkOf,links:bytes32,socials:bytes32"

DEFAULT_MECH_UINT_KEYS: Tuple[str, ...] = (
    "reflect", "reflections_percent", "reflection_percent", "reflection",
    "liquidity_fee", "auto_lp", "auto_lp_share", "lp_share", "liquidity_share",
    "dev_fee", "dev_share", "developer_fee",
    "gamble", "gamble_fee", "gamble_share", "gamble_percent",
    "buy_fee", "sell_fee", "tax_fee", "total_fee",
    "burn_buy", "burn_sell", "max_daily_pump", "death_time", "reaper_period",
    "apy", "apy_per_epoch", "max_wallet", "max_tx",
)
DEFAULT_MECH_BOOL_KEYS: Tuple[str, ...] = (
    "reflect", "eth_reflect", "gamble", "swap_enabled", "antibot", "trading_enabled",
)
DEFAULT_MECH_MAPPING_UINT_FUNCS = (
    "fees,config,settings,params,get,fees:bytes32,config:bytes32,settings:bytes32,get:bytes32"
)
DEFAULT_MECH_MAPPING_BOOL_FUNCS = "flags,feature,flags:bytes32"

DEFAULT_CREATE_EVENT_NAMES = "TokenCreated,Created,Launched,TokenLaunched"
DEFAULT_LOCK_EVENT_NAMES = "SettingsLocked,LiquidityLocked,MechanismLocked"


def _env_list(raw: Optional[str], fallback: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = (raw or "").strip()
    if not raw:
        return fallback
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def _env_flag(raw: Optional[str], default: bool) -> bool:
    if raw is None:
        return default
    return raw.strip().lower() not in {"0", "false", "no", "off", ""}


def _env_number(env: Mapping[str, str], name: str, default: float) -> float:
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be numeric, got {raw!r}") from exc


def _first(env: Mapping[str, str], *names: str) -> str:
    for name in names:
        value = (env.get(name) or "").strip()
        if value:
            return value
    return ""


def _address(value: str, name: str) -> str:
    if not is_address(value):
        raise ConfigError(f"{name} is not a valid address: {value!r}")
    return value.lower()


@dataclass
class LaunchWatchConfig:
    bot_token: str
    chat_id: str
    rpc_urls: List[str]
    launchpad_address: str
    chain_id: str = "11155111"
    weth_address: Optional[str] = None
    from_block: Optional[str] = None
    token_url_template: str = "https://ethos.vision/?t={CA}"
    token_button_label: str = "Open in EthOS"
    native_symbol: str = "ETH"
    native_price_id: str = "ethereum"
    native_price_pair: str = "ETH-USD"
    use_abi_catalog: bool = True
    create_event_names: Tuple[str, ...] = tuple(DEFAULT_CREATE_EVENT_NAMES.split(","))
    lock_event_names: Tuple[str, ...] = tuple(DEFAULT_LOCK_EVENT_NAMES.split(","))
    poll_interval: float = 4.0
    rpc_call_timeout: float = 10.0
    http_timeout: float = 12.0
    backfill_chunk_blocks: int = 2000
    social_keys: Tuple[str, ...] = DEFAULT_SOCIAL_KEYS
    socials_mapping_funcs: Tuple[MappingGetter, ...] = field(
        default_factory=lambda: parse_mapping_getters(DEFAULT_SOCIALS_MAPPING_FUNCS)
    )
    mech_uint_keys: Tuple[str, ...] = DEFAULT_MECH_UINT_KEYS
    mech_bool_keys: Tuple[str, ...] = DEFAULT_MECH_BOOL_KEYS
    mech_mapping_uint_funcs: Tuple[MappingGetter, ...] = field(
        default_factory=lambda: parse_mapping_getters(DEFAULT_MECH_MAPPING_UINT_FUNCS)
    )
    mech_mapping_bool_funcs: Tuple[MappingGetter, ...] = field(
        default_factory=lambda: parse_mapping_getters(DEFAULT_MECH_MAPPING_BOOL_FUNCS)
    )
    key_denominators: Dict[str, int] = field(default_factory=lambda: dict(KEY_DENOM))

    def token_url(self, token: str) -> str:
        return self.token_url_template.replace("{CA}", token or "")


def load_config(env: Optional[Mapping[str, str]] = None) -> LaunchWatchConfig:
    """Build a :class:`LaunchWatchConfig` from ``env`` (default ``os.environ``)."""

    env = os.environ if env is None else env

    bot_token = _first(env, "BOT_TOKEN", "TELEGRAM_BOT_TOKEN")
    chat_id = _first(env, "TARGET_CHAT_ID", "TELEGRAM_CHAT_ID")
    rpc_raw = _first(env, "RPC_URL", "RPC_HTTP")
    launchpad = _first(env, "LAUNCHPAD_ADDRESS")

    missing = [
        name
        for name, value in (
            ("BOT_TOKEN", bot_token),
            ("TARGET_CHAT_ID", chat_id),
            ("RPC_URL", rpc_raw),
            ("LAUNCHPAD_ADDRESS", launchpad),
        )
        if not value
    ]
    if missing:
        raise ConfigError(f"Missing required environment: {', '.join(missing)}")

    rpc_urls = [u.strip() for u in rpc_raw.split(",") if u.strip()]
    weth_raw = _first(env, "WETH_ADDRESS")
    weth = _address(weth_raw, "WETH_ADDRESS") if weth_raw else None

    chunk = int(_env_number(env, "BACKFILL_CHUNK_BLOCKS", 2000))
    if chunk <= 0:
        raise ConfigError("BACKFILL_CHUNK_BLOCKS must be >= 1")

    key_denoms = dict(KEY_DENOM)
    if (env.get("KEY_DENOMINATORS") or "").strip():
        key_denoms = parse_key_denominators(env["KEY_DENOMINATORS"])

    return LaunchWatchConfig(
        bot_token=bot_token,
        chat_id=chat_id,
        rpc_urls=rpc_urls,
        launchpad_address=_address(launchpad, "LAUNCHPAD_ADDRESS"),
        chain_id=_first(env, "CHAIN_ID") or "11155111",
        weth_address=weth,
        from_block=_first(env, "FROM_BLOCK") or None,
        token_url_template=_first(env, "TOKEN_URL_TEMPLATE", "ETHOS_URL_TEMPLATE")
        or "https://ethos.vision/?t={CA}",
        token_button_label=_first(env, "TOKEN_BUTTON_LABEL") or "Open in EthOS",
        native_symbol=_first(env, "NATIVE_SYMBOL") or "ETH",
        native_price_id=_first(env, "NATIVE_PRICE_ID") or "ethereum",
        native_price_pair=_first(env, "NATIVE_PRICE_PAIR") or "ETH-USD",
        use_abi_catalog=_env_flag(env.get("USE_ABI_CATALOG"), True),
        create_event_names=_env_list(
            env.get("CREATE_EVENT_NAMES"), tuple(DEFAULT_CREATE_EVENT_NAMES.split(","))
        ),
        lock_event_names=_env_list(
            env.get("LOCK_EVENT_NAMES"), tuple(DEFAULT_LOCK_EVENT_NAMES.split(","))
        ),
        poll_interval=_env_number(env, "POLL_INTERVAL", 4.0),
        rpc_call_timeout=_env_number(env, "RPC_CALL_TIMEOUT", 10.0),
        http_timeout=_env_number(env, "HTTP_TIMEOUT", 12.0),
        backfill_chunk_blocks=chunk,
        social_keys=_env_list(env.get("SOCIAL_KEYS"), DEFAULT_SOCIAL_KEYS),
        socials_mapping_funcs=parse_mapping_getters(
            _first(env, "SOCIALS_MAPPING_FUNCS") or DEFAULT_SOCIALS_MAPPING_FUNCS
        ),
        mech_uint_keys=_env_list(env.get("MECH_UINT_KEYS"), DEFAULT_MECH_UINT_KEYS),
        mech_bool_keys=_env_list(env.get("MECH_BOOL_KEYS"), DEFAULT_MECH_BOOL_KEYS),
        mech_mapping_uint_funcs=parse_mapping_getters(
            _first(env, "MECH_MAPPING_UINT_FUNCS") or DEFAULT_MECH_MAPPING_UINT_FUNCS
        ),
        mech_mapping_bool_funcs=parse_mapping_getters(
            _first(env, "MECH_MAPPING_BOOL_FUNCS") or DEFAULT_MECH_MAPPING_BOOL_FUNCS
        ),
        key_denominators=key_denoms,
    )


__all__ = [
    "ConfigError",
    "LaunchWatchConfig",
    "load_config",
    "DEFAULT_SOCIAL_KEYS",
    "DEFAULT_MECH_UINT_KEYS",
    "DEFAULT_MECH_BOOL_KEYS",
]
