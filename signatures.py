"""Event topics and well-known constants used to match raw launchpad logs.

Everything here is derived from the canonical event signature text except
for the launchpad's own token-creation topic, which is non-standard and
has to be matched by its literal hash.
"""

from __future__ import annotations

from typing import Tuple

from eth_utils import encode_hex, keccak


def event_topic(signature: str) -> str:
    """Return the lowercase ``0x`` topic hash for an event signature."""

    return encode_hex(keccak(text=signature)).lower()


ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
ZERO_TOPIC = "0x" + "00" * 32

TRANSFER_TOPIC = event_topic("Transfer(address,address,uint256)")
PAIR_CREATED_TOPIC = event_topic("PairCreated(address,address,address,uint256)")
SYNC_TOPIC = event_topic("Sync(uint112,uint112)")
MINT_TOPIC = event_topic("Mint(address,uint256,uint256)")
DEPOSIT_TOPIC = event_topic("Deposit(address,uint256)")

# Emitted by the launchpad factory as TokenCreated(address indexed token, string name, string symbol)
# under a signature that does not hash from any public declaration.
TOKEN_CREATED_TOPIC = "0xffc04f682c7b287e4b552dacd4b833d7c33dc0549cd6da84388408e4830c0562"

SETTINGS_LOCKED_SIGNATURES: Tuple[str, ...] = (
    "SettingsLocked(address)",
    "LiquidityLocked(address)",
    "MechanismLocked(address)",
)
SETTINGS_LOCKED_TOPICS: Tuple[str, ...] = tuple(
    event_topic(sig) for sig in SETTINGS_LOCKED_SIGNATURES
)


__all__ = [
    "event_topic",
    "ZERO_ADDRESS",
    "ZERO_TOPIC",
    "TRANSFER_TOPIC",
    "PAIR_CREATED_TOPIC",
    "SYNC_TOPIC",
    "MINT_TOPIC",
    "DEPOSIT_TOPIC",
    "TOKEN_CREATED_TOPIC",
    "SETTINGS_LOCKED_SIGNATURES",
    "SETTINGS_LOCKED_TOPICS",
]
