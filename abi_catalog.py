"""Optional ABI path: name-based matching of launchpad events.

When Etherscan has a verified ABI for the launchpad, its events can be
decoded exactly and matched against configurable create/lock name
synonyms.  The heuristic decoders remain the primary path; this module
only short-circuits them for receipts it recognises.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import aiohttp
import requests
from eth_abi.abi import decode
from eth_abi.exceptions import DecodingError

from etherscan_config import (
    apply_chain_id,
    load_etherscan_base_urls,
    load_etherscan_keys,
    make_key_getter,
)
from log_decoders import LogEntry, Receipt, to_bytes
from signatures import event_topic

logger = logging.getLogger(__name__)

ABI_FETCH_TIMEOUT = 15

_STATIC_INDEXED = ("address", "bool")


@dataclass(frozen=True)
class EventSpec:
    name: str
    inputs: Tuple[Tuple[str, str, bool], ...]  # (name, type, indexed)

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(t for _, t, _ in self.inputs)})"

    @property
    def topic(self) -> str:
        return event_topic(self.signature)


@dataclass(frozen=True)
class CatalogMatch:
    kind: str  # "create" or "lock"
    token: Optional[str]
    name: str = ""
    symbol: str = ""


def _indexed_value(abi_type: str, topic: str) -> Any:
    static = abi_type in _STATIC_INDEXED or (
        abi_type.startswith(("uint", "int", "bytes")) and abi_type != "bytes" and "[" not in abi_type
    )
    if static:
        (value,) = decode([abi_type], to_bytes(topic))
        return value
    # dynamic indexed values are only stored as their hash
    return topic


def _normalize(value: Any) -> Any:
    if isinstance(value, str) and value.startswith("0x") and len(value) == 42:
        return value.lower()
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return value


class EventCatalog:
    def __init__(self, events: Sequence[EventSpec]):
        self.events: Dict[str, EventSpec] = {event.topic: event for event in events}

    @classmethod
    def from_abi(cls, abi: Sequence[Dict[str, Any]]) -> "EventCatalog":
        events = []
        for entry in abi or []:
            if entry.get("type") != "event" or entry.get("anonymous"):
                continue
            inputs = entry.get("inputs") or []
            if any(str(inp.get("type", "")).startswith("tuple") for inp in inputs):
                logger.debug("skipping event with tuple arguments: %s", entry.get("name"))
                continue
            events.append(
                EventSpec(
                    name=entry.get("name", ""),
                    inputs=tuple(
                        (inp.get("name") or f"arg{idx}", inp["type"], bool(inp.get("indexed")))
                        for idx, inp in enumerate(inputs)
                    ),
                )
            )
        return cls(events)

    def __len__(self) -> int:
        return len(self.events)

    def parse_log(self, log: LogEntry) -> Optional[Tuple[str, Dict[str, Any]]]:
        """Return ``(event_name, named_args)`` or ``None`` when the log is unknown."""

        spec = self.events.get(log.topic0 or "")
        if spec is None:
            return None
        indexed = [(n, t) for n, t, idx in spec.inputs if idx]
        plain = [(n, t) for n, t, idx in spec.inputs if not idx]
        if len(log.topics) != len(indexed) + 1:
            return None
        try:
            args: Dict[str, Any] = {}
            for (arg_name, arg_type), topic in zip(indexed, log.topics[1:]):
                args[arg_name] = _normalize(_indexed_value(arg_type, topic))
            values = decode([t for _, t in plain], log.data) if plain else ()
            for (arg_name, _), value in zip(plain, values):
                args[arg_name] = _normalize(value)
        except (DecodingError, ValueError, TypeError, OverflowError):
            return None
        ordered = {n: args[n] for n, _, _ in spec.inputs}
        return spec.name, ordered


def _first_address(args: Dict[str, Any]) -> Optional[str]:
    for value in args.values():
        if isinstance(value, str) and value.startswith("0x") and len(value) == 42:
            return value
    return None


def match_receipt(
    catalog: EventCatalog,
    receipt: Receipt,
    launchpad: str,
    create_names: Sequence[str],
    lock_names: Sequence[str],
) -> List[CatalogMatch]:
    creates = {n.lower() for n in create_names}
    locks = {n.lower() for n in lock_names}
    launchpad = (launchpad or "").lower()
    matches: List[CatalogMatch] = []
    for log in receipt.logs:
        if log.address != launchpad:
            continue
        parsed = catalog.parse_log(log)
        if parsed is None:
            continue
        name, args = parsed
        token = args.get("tokenAddress") or args.get("token")
        if name.lower() in creates:
            matches.append(
                CatalogMatch(
                    kind="create",
                    token=token or _first_address(args),
                    name=str(args.get("name") or ""),
                    symbol=str(args.get("symbol") or ""),
                )
            )
        elif name.lower() in locks:
            matches.append(CatalogMatch(kind="lock", token=token))
    return matches


def _abi_params(address: str, api_key: str) -> Dict[str, str]:
    return {"module": "contract", "action": "getabi", "address": address, "apikey": api_key}


def _parse_abi_response(payload: Any) -> Optional[List[Dict[str, Any]]]:
    if not isinstance(payload, dict) or str(payload.get("status")) != "1":
        message = payload.get("message") if isinstance(payload, dict) else payload
        logger.warning("Etherscan ABI fetch status!=1: %s", message)
        return None
    try:
        abi = json.loads(payload.get("result") or "")
    except ValueError:
        logger.warning("Etherscan returned an unparseable ABI")
        return None
    return abi if isinstance(abi, list) else None


async def fetch_abi(
    address: str,
    chain_id: str,
    session: Optional[aiohttp.ClientSession] = None,
    *,
    keys: Optional[Sequence[str]] = None,
    base_urls: Optional[Sequence[str]] = None,
) -> Optional[List[Dict[str, Any]]]:
    """Fetch the verified ABI for ``address``; ``None`` when unavailable."""

    keys = load_etherscan_keys(keys)
    if not keys:
        return None
    next_key = make_key_getter(keys)
    own_session = session is None
    if own_session:
        session = aiohttp.ClientSession(
            trust_env=True, timeout=aiohttp.ClientTimeout(total=ABI_FETCH_TIMEOUT)
        )
    try:
        for base_url in load_etherscan_base_urls(chain_id, base_urls):
            params = apply_chain_id(_abi_params(address, next_key()), base_url, chain_id)
            try:
                async with session.get(base_url, params=params) as resp:
                    payload = await resp.json(content_type=None)
            except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
                logger.warning("Etherscan ABI request to %s failed: %s", base_url, str(exc) or type(exc).__name__)
                continue
            abi = _parse_abi_response(payload)
            if abi is not None:
                return abi
    finally:
        if own_session:
            await session.close()
    return None


def fetch_abi_sync(address: str, chain_id: str) -> Optional[List[Dict[str, Any]]]:
    """Blocking variant for command-line checks."""

    keys = load_etherscan_keys()
    if not keys:
        return None
    next_key = make_key_getter(keys)
    for base_url in load_etherscan_base_urls(chain_id):
        params = apply_chain_id(_abi_params(address, next_key()), base_url, chain_id)
        try:
            resp = requests.get(base_url, params=params, timeout=ABI_FETCH_TIMEOUT)
            payload = resp.json()
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Etherscan ABI request to %s failed: %s", base_url, exc)
            continue
        abi = _parse_abi_response(payload)
        if abi is not None:
            return abi
    return None


__all__ = [
    "EventSpec",
    "CatalogMatch",
    "EventCatalog",
    "match_receipt",
    "fetch_abi",
    "fetch_abi_sync",
]
