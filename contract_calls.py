"""Speculative read-only calls against contracts with an unknown interface.

A probe candidate is plain data: a :class:`ViewCall` names the function,
its argument types and the return shape we hope for.  The ``try_*``
helpers run one candidate through the chain client and collapse every
kind of failure (revert, timeout, wrong return type, missing function)
into ``None`` so the caller can move on to the next candidate.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Sequence, Tuple

from eth_abi.abi import decode, encode
from eth_utils import function_signature_to_4byte_selector, keccak

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ViewCall:
    name: str
    arg_types: Tuple[str, ...] = ()
    return_types: Tuple[str, ...] = ("uint256",)

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(self.arg_types)})"

    @property
    def selector(self) -> bytes:
        return function_signature_to_4byte_selector(self.signature)

    def encode(self, args: Sequence[Any] = ()) -> bytes:
        if len(args) != len(self.arg_types):
            raise ValueError(f"{self.signature} expects {len(self.arg_types)} args")
        if not self.arg_types:
            return self.selector
        return self.selector + encode(list(self.arg_types), list(args))

    def decode(self, raw: bytes) -> Tuple[Any, ...]:
        return tuple(decode(list(self.return_types), raw))


@dataclass(frozen=True)
class MappingGetter:
    """A ``fn(key) -> value`` getter keyed by a string or its keccak hash."""

    fn: str
    key_type: str = "string"

    def call(self, return_type: str) -> ViewCall:
        return ViewCall(self.fn, (self.key_type,), (return_type,))


def string_getter(name: str) -> ViewCall:
    return ViewCall(name, (), ("string",))


def uint_getter(name: str) -> ViewCall:
    return ViewCall(name, (), ("uint256",))


def bool_getter(name: str) -> ViewCall:
    return ViewCall(name, (), ("bool",))


def mapping_key_argument(key: str, key_type: str) -> Any:
    if key_type == "bytes32":
        return keccak(text=key)
    return key


def parse_mapping_getters(raw: str) -> Tuple[MappingGetter, ...]:
    """Parse ``fn[:string|bytes32],...`` into mapping getter descriptors."""

    getters = []
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        fn, _, key_type = entry.partition(":")
        key_type = "bytes32" if key_type.strip() == "bytes32" else "string"
        getters.append(MappingGetter(fn.strip(), key_type))
    return tuple(getters)


async def first_success(candidates: Iterable[Callable[[], Awaitable[Any]]]) -> Any:
    """Await candidates in order and return the first non-``None`` result."""

    for candidate in candidates:
        value = await candidate()
        if value is not None:
            return value
    return None


async def _call(chain, address: str, call: ViewCall, args: Sequence[Any] = ()) -> Optional[Tuple[Any, ...]]:
    try:
        return await chain.call_view(address, call, tuple(args))
    except Exception as exc:
        logger.debug("probe %s on %s failed: %s", call.signature, address, exc)
        return None


def _as_string(out: Optional[Tuple[Any, ...]]) -> Optional[str]:
    if not out or not isinstance(out[0], str):
        return None
    text = out[0].strip()
    return text or None


def _as_uint(out: Optional[Tuple[Any, ...]]) -> Optional[int]:
    if not out:
        return None
    value = out[0]
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _as_bool(out: Optional[Tuple[Any, ...]]) -> Optional[bool]:
    if not out or not isinstance(out[0], bool):
        return None
    return out[0]


async def try_string(chain, address: str, call: ViewCall) -> Optional[str]:
    return _as_string(await _call(chain, address, call))


async def try_uint(chain, address: str, call: ViewCall) -> Optional[int]:
    return _as_uint(await _call(chain, address, call))


async def try_bool(chain, address: str, call: ViewCall) -> Optional[bool]:
    return _as_bool(await _call(chain, address, call))


async def try_mapping_string(chain, address: str, getter: MappingGetter, key: str) -> Optional[str]:
    arg = mapping_key_argument(key, getter.key_type)
    return _as_string(await _call(chain, address, getter.call("string"), (arg,)))


async def try_mapping_uint(chain, address: str, getter: MappingGetter, key: str) -> Optional[int]:
    arg = mapping_key_argument(key, getter.key_type)
    return _as_uint(await _call(chain, address, getter.call("uint256"), (arg,)))


async def try_mapping_bool(chain, address: str, getter: MappingGetter, key: str) -> Optional[bool]:
    arg = mapping_key_argument(key, getter.key_type)
    return _as_bool(await _call(chain, address, getter.call("bool"), (arg,)))


async def try_tuple(chain, address: str, call: ViewCall, keys: Sequence[str]) -> Dict[str, Any]:
    """Map a tuple getter's outputs positionally onto ``keys``.

    Empty strings are dropped; integers and booleans are kept as-is.
    """

    out = await _call(chain, address, call)
    result: Dict[str, Any] = {}
    if not out:
        return result
    for key, value in zip(keys, out):
        if value is None:
            continue
        if isinstance(value, str):
            value = value.strip()
            if not value:
                continue
        result[key] = value
    return result


__all__ = [
    "ViewCall",
    "MappingGetter",
    "string_getter",
    "uint_getter",
    "bool_getter",
    "mapping_key_argument",
    "parse_mapping_getters",
    "first_success",
    "try_string",
    "try_uint",
    "try_bool",
    "try_mapping_string",
    "try_mapping_uint",
    "try_mapping_bool",
    "try_tuple",
]
