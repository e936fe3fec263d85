"""ABI-less decoders for the handful of log shapes a launch produces.

Each ``decode_*`` helper looks at exactly one :class:`LogEntry` and either
returns a typed record or ``None``.  They never raise: a log that does not
fit the expected shape is simply not that event, and the caller moves on
to the sibling logs of the same receipt.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Tuple, Union

from eth_abi.abi import decode
from eth_abi.exceptions import DecodingError

from signatures import (
    DEPOSIT_TOPIC,
    MINT_TOPIC,
    PAIR_CREATED_TOPIC,
    SETTINGS_LOCKED_TOPICS,
    SYNC_TOPIC,
    TOKEN_CREATED_TOPIC,
    TRANSFER_TOPIC,
)

_DECODE_ERRORS = (DecodingError, ValueError, TypeError, IndexError, OverflowError)


def to_hex(value: Any) -> str:
    """Return a lowercase ``0x`` hex string for bytes-like or hex-string input."""

    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    text = str(value or "").strip().lower()
    if not text.startswith("0x"):
        text = "0x" + text
    return text


def to_bytes(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    text = str(value or "").strip()
    if text.startswith(("0x", "0X")):
        text = text[2:]
    return bytes.fromhex(text)


def topic_to_address(topic: str) -> str:
    """Extract the right-aligned 20-byte address from a 32-byte topic."""

    topic = to_hex(topic)
    if len(topic) != 66:
        raise ValueError(f"topic is not 32 bytes: {topic}")
    int(topic, 16)
    return "0x" + topic[-40:]


@dataclass(frozen=True)
class LogEntry:
    address: str
    topics: Tuple[str, ...]
    data: bytes
    transaction_hash: str

    @property
    def topic0(self) -> Optional[str]:
        return self.topics[0] if self.topics else None

    @classmethod
    def from_rpc(cls, raw: Any) -> "LogEntry":
        return cls(
            address=str(raw["address"]).lower(),
            topics=tuple(to_hex(t) for t in (raw.get("topics") or [])),
            data=to_bytes(raw.get("data") or b""),
            transaction_hash=to_hex(raw.get("transactionHash") or ""),
        )


@dataclass(frozen=True)
class Receipt:
    transaction_hash: str
    to: Optional[str]
    logs: Tuple[LogEntry, ...]

    @classmethod
    def from_rpc(cls, raw: Any) -> "Receipt":
        to_addr = raw.get("to")
        return cls(
            transaction_hash=to_hex(raw.get("transactionHash") or ""),
            to=str(to_addr).lower() if to_addr else None,
            logs=tuple(LogEntry.from_rpc(lg) for lg in (raw.get("logs") or [])),
        )


@dataclass(frozen=True)
class TokenCreated:
    address: str
    name: str
    symbol: str


@dataclass(frozen=True)
class PairCreated:
    token0: str
    token1: str
    pair: str


@dataclass(frozen=True)
class Mint:
    amount0: int
    amount1: int


@dataclass(frozen=True)
class Sync:
    reserve0: int
    reserve1: int


@dataclass(frozen=True)
class Deposit:
    contract: str
    amount: int


@dataclass(frozen=True)
class SettingsLocked:
    contract_address: Optional[str]


@dataclass(frozen=True)
class Transfer:
    token: str
    sender: str
    recipient: str
    amount: int


DecodedEvent = Union[TokenCreated, PairCreated, Mint, Sync, Deposit, SettingsLocked, Transfer]


def _matches(log: LogEntry, topic: str, min_topics: int = 1) -> bool:
    return len(log.topics) >= min_topics and log.topics[0] == topic


def decode_token_created(log: LogEntry) -> Optional[TokenCreated]:
    if not _matches(log, TOKEN_CREATED_TOPIC, 2):
        return None
    try:
        token = topic_to_address(log.topics[1])
        name, symbol = decode(["string", "string"], log.data)
    except _DECODE_ERRORS:
        return None
    return TokenCreated(address=token, name=name, symbol=symbol)


def decode_pair_created(log: LogEntry) -> Optional[PairCreated]:
    if not _matches(log, PAIR_CREATED_TOPIC, 3):
        return None
    try:
        token0 = topic_to_address(log.topics[1])
        token1 = topic_to_address(log.topics[2])
        pair, _ = decode(["address", "uint256"], log.data)
    except _DECODE_ERRORS:
        return None
    return PairCreated(token0=token0, token1=token1, pair=str(pair).lower())


def decode_mint(log: LogEntry) -> Optional[Mint]:
    if not _matches(log, MINT_TOPIC):
        return None
    try:
        amount0, amount1 = decode(["uint256", "uint256"], log.data)
    except _DECODE_ERRORS:
        return None
    return Mint(amount0=amount0, amount1=amount1)


def decode_sync(log: LogEntry) -> Optional[Sync]:
    if not _matches(log, SYNC_TOPIC):
        return None
    try:
        reserve0, reserve1 = decode(["uint112", "uint112"], log.data)
    except _DECODE_ERRORS:
        return None
    return Sync(reserve0=reserve0, reserve1=reserve1)


def decode_deposit(log: LogEntry) -> Optional[Deposit]:
    if not _matches(log, DEPOSIT_TOPIC):
        return None
    try:
        (amount,) = decode(["uint256"], log.data)
    except _DECODE_ERRORS:
        return None
    return Deposit(contract=log.address, amount=amount)


def decode_settings_locked(log: LogEntry) -> Optional[SettingsLocked]:
    if not log.topics or log.topics[0] not in SETTINGS_LOCKED_TOPICS:
        return None
    try:
        if len(log.topics) > 1:
            return SettingsLocked(contract_address=topic_to_address(log.topics[1]))
        if len(log.data) >= 32:
            return SettingsLocked(contract_address="0x" + log.data[12:32].hex())
    except _DECODE_ERRORS:
        return None
    return SettingsLocked(contract_address=None)


def decode_transfer(log: LogEntry) -> Optional[Transfer]:
    if not _matches(log, TRANSFER_TOPIC, 3):
        return None
    try:
        sender = topic_to_address(log.topics[1])
        recipient = topic_to_address(log.topics[2])
        (amount,) = decode(["uint256"], log.data)
    except _DECODE_ERRORS:
        return None
    return Transfer(token=log.address, sender=sender, recipient=recipient, amount=amount)


_DECODERS = (
    decode_token_created,
    decode_pair_created,
    decode_mint,
    decode_sync,
    decode_deposit,
    decode_settings_locked,
    decode_transfer,
)


def decode_log(log: LogEntry) -> Optional[DecodedEvent]:
    """Return the first event variant the log decodes as, or ``None``."""

    for decoder in _DECODERS:
        event = decoder(log)
        if event is not None:
            return event
    return None


__all__ = [
    "LogEntry",
    "Receipt",
    "TokenCreated",
    "PairCreated",
    "Mint",
    "Sync",
    "Deposit",
    "SettingsLocked",
    "Transfer",
    "DecodedEvent",
    "to_hex",
    "to_bytes",
    "topic_to_address",
    "decode_token_created",
    "decode_pair_created",
    "decode_mint",
    "decode_sync",
    "decode_deposit",
    "decode_settings_locked",
    "decode_transfer",
    "decode_log",
]
