"""In-memory chain double and log builders shared by the test modules."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple

from eth_abi.abi import encode

from log_decoders import LogEntry, Receipt
from signatures import (
    DEPOSIT_TOPIC,
    MINT_TOPIC,
    PAIR_CREATED_TOPIC,
    SETTINGS_LOCKED_TOPICS,
    SYNC_TOPIC,
    TOKEN_CREATED_TOPIC,
    TRANSFER_TOPIC,
    ZERO_ADDRESS,
)

LAUNCHPAD = "0x1111111111111111111111111111111111111111"
TOKEN = "0x2222222222222222222222222222222222222222"
WETH = "0x3333333333333333333333333333333333333333"
PAIR = "0x4444444444444444444444444444444444444444"
DEV = "0x5555555555555555555555555555555555555555"
FACTORY = "0x6666666666666666666666666666666666666666"
OTHER = "0x7777777777777777777777777777777777777777"
TX_HASH = "0x" + "ab" * 32


def topic_for(address: str) -> str:
    return "0x" + "00" * 12 + address.lower()[2:]


def make_log(address: str, topics: Sequence[str], data: bytes = b"", tx: str = TX_HASH) -> LogEntry:
    return LogEntry(address=address.lower(), topics=tuple(topics), data=data, transaction_hash=tx)


def token_created_log(token: str, name: str, symbol: str, emitter: str = LAUNCHPAD, tx: str = TX_HASH) -> LogEntry:
    return make_log(emitter, [TOKEN_CREATED_TOPIC, topic_for(token)], encode(["string", "string"], [name, symbol]), tx)


def transfer_log(token: str, sender: str, recipient: str, amount: int, tx: str = TX_HASH) -> LogEntry:
    return make_log(
        token,
        [TRANSFER_TOPIC, topic_for(sender), topic_for(recipient)],
        encode(["uint256"], [amount]),
        tx,
    )


def pair_created_log(token0: str, token1: str, pair: str, tx: str = TX_HASH) -> LogEntry:
    return make_log(
        FACTORY,
        [PAIR_CREATED_TOPIC, topic_for(token0), topic_for(token1)],
        encode(["address", "uint256"], [pair, 7]),
        tx,
    )


def mint_log(pair: str, amount0: int, amount1: int, tx: str = TX_HASH) -> LogEntry:
    return make_log(pair, [MINT_TOPIC, topic_for(LAUNCHPAD)], encode(["uint256", "uint256"], [amount0, amount1]), tx)


def sync_log(pair: str, reserve0: int, reserve1: int, tx: str = TX_HASH) -> LogEntry:
    return make_log(pair, [SYNC_TOPIC], encode(["uint112", "uint112"], [reserve0, reserve1]), tx)


def deposit_log(weth: str, amount: int, tx: str = TX_HASH) -> LogEntry:
    return make_log(weth, [DEPOSIT_TOPIC, topic_for(LAUNCHPAD)], encode(["uint256"], [amount]), tx)


def lock_log(subject: Optional[str], emitter: str = LAUNCHPAD, tx: str = TX_HASH) -> LogEntry:
    if subject is None:
        return make_log(emitter, [SETTINGS_LOCKED_TOPICS[0]], b"", tx)
    return make_log(emitter, [SETTINGS_LOCKED_TOPICS[0], topic_for(subject)], b"", tx)


def launch_receipt(tx: str = TX_HASH, to: Optional[str] = LAUNCHPAD) -> Receipt:
    """TokenCreated, PairCreated, one LP transfer, two dev transfers and a Mint."""

    logs = (
        token_created_log(TOKEN, "Moon", "MOON", tx=tx),
        transfer_log(TOKEN, ZERO_ADDRESS, LAUNCHPAD, 1000 * 10 ** 18, tx=tx),
        pair_created_log(TOKEN, WETH, PAIR, tx=tx),
        transfer_log(TOKEN, LAUNCHPAD, PAIR, 800 * 10 ** 18, tx=tx),
        transfer_log(TOKEN, LAUNCHPAD, DEV, 150 * 10 ** 18, tx=tx),
        transfer_log(TOKEN, LAUNCHPAD, OTHER, 50 * 10 ** 18, tx=tx),
        mint_log(PAIR, 800 * 10 ** 18, 5 * 10 ** 18, tx=tx),
    )
    return Receipt(transaction_hash=tx, to=to, logs=logs)


class FakeChain:
    """Answers view calls from a ``(address, signature, args)`` table."""

    def __init__(self, head: int = 100):
        self.views: Dict[Tuple[str, str, Tuple[Any, ...]], Any] = {}
        self.receipts: Dict[str, Receipt] = {}
        self.inputs: Dict[str, str] = {}
        self.logs_by_block: Dict[int, List[LogEntry]] = {}
        self.live_logs: List[LogEntry] = []
        self.head = head
        self.view_calls: List[Tuple[str, str, Tuple[Any, ...]]] = []
        self.receipt_requests: List[str] = []
        self.log_requests: List[Tuple[int, int]] = []

    def set_view(self, address: str, signature: str, value: Any, args: Sequence[Any] = ()) -> None:
        if not isinstance(value, (tuple, Exception)):
            value = (value,)
        self.views[(address.lower(), signature, tuple(args))] = value

    def add_receipt(self, receipt: Receipt, tx_input: str = "") -> None:
        self.receipts[receipt.transaction_hash] = receipt
        self.inputs[receipt.transaction_hash] = tx_input

    async def call_view(self, address, call, args=()):
        key = (address.lower(), call.signature, tuple(args))
        self.view_calls.append(key)
        value = self.views.get(key)
        if isinstance(value, Exception):
            raise value
        return value

    async def get_receipt(self, tx_hash):
        self.receipt_requests.append(tx_hash)
        value = self.receipts.get(tx_hash)
        if isinstance(value, Exception):
            raise value
        return value

    async def get_transaction_input(self, tx_hash):
        return self.inputs.get(tx_hash, "")

    async def get_logs(self, address, from_block, to_block):
        self.log_requests.append((from_block, to_block))
        found = []
        for block in range(from_block, to_block + 1):
            found.extend(self.logs_by_block.get(block, []))
        return found

    async def block_number(self):
        return self.head

    async def watch_logs(self, address, stop_event, poll_interval=4.0, start_block=None):
        for log in self.live_logs:
            if stop_event.is_set():
                return
            yield log
