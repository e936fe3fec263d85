"""Etherscan credentials and endpoint routing for launchpad ABI lookups.

ABI lookups are optional: with no key configured the watcher never calls
Etherscan and relies on log heuristics alone.  Both the async watcher and
the blocking ``--dump-abi`` check read their keys and hosts from here.
"""

from __future__ import annotations

import itertools
import os
from typing import Callable, Dict, List, Mapping, Optional, Sequence

KEYS_ENV = ("ETHERSCAN_API_KEYS", "ETHERSCAN_API_KEY")
URLS_ENV = "ETHERSCAN_API_URLS"

# per-network hosts; everything else goes through the v2 endpoint with ``chainid``
_CHAIN_API_URLS: Dict[str, str] = {
    "1": "https://api.etherscan.io/api",
    "11155111": "https://api-sepolia.etherscan.io/api",
}
V2_API_URL = "https://api.etherscan.io/v2/api"


def split_csv(raw: Optional[str]) -> List[str]:
    return [part.strip() for part in (raw or "").split(",") if part.strip()]


def load_etherscan_keys(
    overrides: Optional[Sequence[str]] = None, env: Optional[Mapping[str, str]] = None
) -> List[str]:
    """Explicit ``overrides`` first, then ``ETHERSCAN_API_KEYS``, then ``ETHERSCAN_API_KEY``.

    An empty list disables ABI lookups.
    """

    if overrides:
        return split_csv(",".join(overrides))
    env = os.environ if env is None else env
    for name in KEYS_ENV:
        keys = split_csv(env.get(name))
        if keys:
            return keys
    return []


def load_etherscan_base_urls(
    chain_id: str | int,
    overrides: Optional[Sequence[str]] = None,
    env: Optional[Mapping[str, str]] = None,
) -> List[str]:
    if overrides:
        return split_csv(",".join(overrides))
    env = os.environ if env is None else env
    configured = split_csv(env.get(URLS_ENV))
    if configured:
        return configured
    legacy = _CHAIN_API_URLS.get(str(chain_id))
    return [legacy, V2_API_URL] if legacy else [V2_API_URL]


def apply_chain_id(params: dict, base_url: str, chain_id: str | int) -> dict:
    """Add ``chainid`` for v2 endpoints; legacy hosts imply the network."""

    if "/v2/" in base_url and "chainid" not in params:
        return {**params, "chainid": str(chain_id)}
    return params


def make_key_getter(keys: Sequence[str]) -> Callable[[], str]:
    """Round-robin over ``keys``; yields ``""`` forever when there are none."""

    pool = itertools.cycle(list(keys) or [""])
    return lambda: next(pool)


__all__ = [
    "load_etherscan_keys",
    "load_etherscan_base_urls",
    "apply_chain_id",
    "make_key_getter",
    "V2_API_URL",
]
