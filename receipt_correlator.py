"""Rebuild launch and lock facts from the logs of a single receipt.

The launchpad factory deploys the token, seeds the AMM pair and hands the
developer allocation out in one transaction.  Nothing in that receipt is
decoded with an ABI: the token comes from the creation log (or the first
mint-from-zero Transfer), the pair from ``PairCreated``, and the token and
native amounts from Transfer bookkeeping plus the pair's Mint/Sync logs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Optional

from contract_calls import ViewCall, string_getter, try_string, try_uint, uint_getter
from log_decoders import (
    Receipt,
    decode_deposit,
    decode_mint,
    decode_pair_created,
    decode_settings_locked,
    decode_sync,
    decode_token_created,
    decode_transfer,
)
from signatures import ZERO_ADDRESS

logger = logging.getLogger(__name__)

NAME_GETTER = string_getter("name")
SYMBOL_GETTER = string_getter("symbol")
DECIMALS_GETTER = ViewCall("decimals", (), ("uint8",))
TOTAL_SUPPLY_GETTER = uint_getter("totalSupply")


@dataclass(frozen=True)
class TokenBasics:
    name: str = ""
    symbol: str = ""
    decimals: int = 18
    total_supply: int = 0


@dataclass(frozen=True)
class LaunchFact:
    token: str
    transaction_hash: str
    name: str = ""
    symbol: str = ""
    pair: Optional[str] = None
    token0: Optional[str] = None
    token1: Optional[str] = None
    dev_amount: int = 0
    lp_token_amount: int = 0
    lp_native_wei: int = 0
    decimals: int = 18
    total_supply: int = 0
    wrapped_native: Optional[str] = None


@dataclass(frozen=True)
class LockFact:
    contract_address: Optional[str]
    transaction_hash: str


def _sent_to(receipt: Receipt, launchpad: str) -> bool:
    return bool(receipt.to) and receipt.to == (launchpad or "").lower()


def _resolve_token(receipt: Receipt):
    for log in receipt.logs:
        created = decode_token_created(log)
        if created is not None:
            return created.address, created.name, created.symbol
    for log in receipt.logs:
        transfer = decode_transfer(log)
        if transfer is not None and transfer.sender == ZERO_ADDRESS:
            return transfer.token, "", ""
    return None, "", ""


def _native_side(receipt: Receipt, token: str, pair: str, token0: str) -> int:
    token_is_0 = token0 == token
    minted = synced = None
    for log in receipt.logs:
        if log.address != pair:
            continue
        mint = decode_mint(log)
        if mint is not None:
            minted = mint.amount1 if token_is_0 else mint.amount0
            continue
        sync = decode_sync(log)
        if sync is not None:
            synced = sync.reserve1 if token_is_0 else sync.reserve0
    if synced is not None:
        return synced
    return minted or 0


def _wrapped_transfers_to_pair(receipt: Receipt, wrapped: str, pair: str) -> int:
    total = 0
    for log in receipt.logs:
        if log.address != wrapped:
            continue
        transfer = decode_transfer(log)
        if transfer is not None and transfer.recipient == pair:
            total += transfer.amount
    return total


def correlate_launch(
    receipt: Receipt, launchpad: str, *, weth_hint: Optional[str] = None
) -> Optional[LaunchFact]:
    """Build a launch draft from ``receipt`` alone, without any chain reads.

    Returns ``None`` for receipts not sent to ``launchpad`` or without a
    token-creation signal.  Decimals and total supply are left at their
    defaults; :func:`detect_launch` fills them from the token contract.
    """

    if not _sent_to(receipt, launchpad):
        return None
    launchpad = launchpad.lower()

    token, name, symbol = _resolve_token(receipt)
    if not token:
        return None

    pair = token0 = token1 = None
    for log in receipt.logs:
        created = decode_pair_created(log)
        if created is not None and token in (created.token0, created.token1):
            pair, token0, token1 = created.pair, created.token0, created.token1
            break

    dev_amount = lp_token_amount = 0
    for log in receipt.logs:
        if log.address != token:
            continue
        transfer = decode_transfer(log)
        if transfer is None or transfer.sender != launchpad:
            continue
        if pair and transfer.recipient == pair:
            lp_token_amount += transfer.amount
        else:
            dev_amount += transfer.amount

    lp_native_wei = 0
    wrapped = weth_hint.lower() if weth_hint else None
    if pair:
        lp_native_wei = _native_side(receipt, token, pair, token0)
        if lp_native_wei == 0:
            deposit_emitter = None
            for log in receipt.logs:
                deposit = decode_deposit(log)
                if deposit is not None:
                    deposit_emitter = deposit.contract
            candidate = deposit_emitter or wrapped
            if candidate:
                inferred = _wrapped_transfers_to_pair(receipt, candidate, pair)
                if inferred > 0:
                    lp_native_wei, wrapped = inferred, candidate

    return LaunchFact(
        token=token,
        transaction_hash=receipt.transaction_hash,
        name=name,
        symbol=symbol,
        pair=pair,
        token0=token0,
        token1=token1,
        dev_amount=dev_amount,
        lp_token_amount=lp_token_amount,
        lp_native_wei=lp_native_wei,
        wrapped_native=wrapped,
    )


async def read_token_basics(chain, token: str) -> TokenBasics:
    name = await try_string(chain, token, NAME_GETTER)
    symbol = await try_string(chain, token, SYMBOL_GETTER)
    decimals = await try_uint(chain, token, DECIMALS_GETTER)
    total_supply = await try_uint(chain, token, TOTAL_SUPPLY_GETTER)
    return TokenBasics(
        name=name or "",
        symbol=symbol or "",
        decimals=18 if decimals is None else decimals,
        total_supply=total_supply or 0,
    )


async def detect_launch(
    receipt: Receipt, launchpad: str, chain, *, weth_hint: Optional[str] = None
) -> Optional[LaunchFact]:
    draft = correlate_launch(receipt, launchpad, weth_hint=weth_hint)
    if draft is None:
        return None
    basics = await read_token_basics(chain, draft.token)
    fact = replace(
        draft,
        name=draft.name or basics.name,
        symbol=draft.symbol or basics.symbol,
        decimals=basics.decimals,
        total_supply=basics.total_supply,
    )
    logger.debug(
        "launch %s in %s: pair=%s dev=%s lp_token=%s lp_native=%s",
        fact.token,
        fact.transaction_hash,
        fact.pair,
        fact.dev_amount,
        fact.lp_token_amount,
        fact.lp_native_wei,
    )
    return fact


def detect_lock(receipt: Receipt, launchpad: str) -> Optional[LockFact]:
    if not _sent_to(receipt, launchpad):
        return None
    for log in receipt.logs:
        locked = decode_settings_locked(log)
        if locked is not None:
            return LockFact(contract_address=locked.contract_address, transaction_hash=receipt.transaction_hash)
    return None


__all__ = [
    "TokenBasics",
    "LaunchFact",
    "LockFact",
    "correlate_launch",
    "read_token_basics",
    "detect_launch",
    "detect_lock",
]
