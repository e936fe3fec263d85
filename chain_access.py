"""Read-only chain access for the watcher, built on ``web3``.

Blocking web3 calls are pushed to the default executor and bounded by
``asyncio.wait_for``.  Receipt, transaction, log and block fetches rotate
through the configured providers on transport failure; speculative view
calls never retry and never raise, a failure just means "no value".
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, AsyncIterator, Callable, List, Optional, Sequence, Tuple

from eth_utils import to_checksum_address
from web3 import HTTPProvider, Web3
from web3.exceptions import TransactionNotFound

from contract_calls import ViewCall
from log_decoders import LogEntry, Receipt, to_hex

logger = logging.getLogger(__name__)


class ChainAccessError(RuntimeError):
    """Transport-level failure talking to every configured provider."""


class Web3ChainClient:
    def __init__(self, urls: Sequence[str], *, call_timeout: float = 10.0):
        self.urls = [u for u in urls if u]
        if not self.urls:
            raise ChainAccessError("No RPC provider URLs configured")
        self.call_timeout = call_timeout
        self.w3, self._index = self._connect()

    def _make_provider(self, url: str) -> Web3:
        return Web3(HTTPProvider(url, request_kwargs={"timeout": self.call_timeout}))

    def _connect(self) -> Tuple[Web3, int]:
        for idx, url in enumerate(self.urls):
            try:
                provider = self._make_provider(url)
                if provider.is_connected():
                    if idx > 0:
                        logger.warning("RPC provider fallback engaged: %s (index %s)", url, idx)
                    return provider, idx
                logger.error("RPC provider unreachable: %s", url)
            except Exception as exc:
                logger.error("RPC provider connection error for %s: %s", url, exc)
        logger.error("All RPC providers unreachable; defaulting to primary %s", self.urls[0])
        return self._make_provider(self.urls[0]), 0

    def _rotate(self, cause: Exception) -> bool:
        if len(self.urls) < 2:
            return False
        order = list(range(self._index + 1, len(self.urls))) + list(range(0, self._index))
        for next_idx in order:
            url = self.urls[next_idx]
            try:
                provider = self._make_provider(url)
                if provider.is_connected():
                    self.w3, self._index = provider, next_idx
                    logger.warning("Switched RPC provider to %s (reason: %s)", url, cause)
                    return True
            except Exception as exc:
                logger.error("Failed switching RPC provider to %s: %s", url, exc)
        return False

    async def _run(self, fn: Callable[[Web3], Any]) -> Any:
        loop = asyncio.get_running_loop()
        w3 = self.w3
        return await asyncio.wait_for(
            loop.run_in_executor(None, lambda: fn(w3)), timeout=self.call_timeout
        )

    async def _run_with_fallback(self, fn: Callable[[Web3], Any], label: str) -> Any:
        start = time.perf_counter()
        try:
            return await self._run(fn)
        except TransactionNotFound:
            raise
        except Exception as exc:
            latency_ms = round((time.perf_counter() - start) * 1000, 2)
            msg = str(exc).lower()
            level = logging.WARNING if ("429" in msg or "rate" in msg) else logging.ERROR
            logger.log(level, "%s failed after %.2fms: %s", label, latency_ms, str(exc) or type(exc).__name__)
            if not self._rotate(exc):
                raise ChainAccessError(f"{label} failed: {exc}") from exc
        try:
            return await self._run(fn)
        except TransactionNotFound:
            raise
        except Exception as exc:
            raise ChainAccessError(f"{label} failed on fallback provider: {exc}") from exc

    async def call_view(self, address: str, call: ViewCall, args: Sequence[Any] = ()) -> Optional[Tuple[Any, ...]]:
        """Run a speculative ``eth_call``; ``None`` on revert, timeout or bad return data."""

        try:
            target = to_checksum_address(address)
            data = call.encode(args)
            raw = await self._run(lambda w3: w3.eth.call({"to": target, "data": data}))
        except Exception as exc:
            logger.debug("eth_call %s on %s failed: %s", call.signature, address, exc)
            return None
        raw = bytes(raw or b"")
        if not raw:
            return None
        try:
            return call.decode(raw)
        except Exception as exc:
            logger.debug("eth_call %s on %s returned undecodable data: %s", call.signature, address, exc)
            return None

    async def get_receipt(self, tx_hash: str) -> Optional[Receipt]:
        try:
            raw = await self._run_with_fallback(
                lambda w3: w3.eth.get_transaction_receipt(tx_hash), "get_receipt"
            )
        except TransactionNotFound:
            return None
        if not raw:
            return None
        return Receipt.from_rpc(raw)

    async def get_transaction_input(self, tx_hash: str) -> str:
        try:
            tx = await self._run_with_fallback(lambda w3: w3.eth.get_transaction(tx_hash), "get_transaction")
        except (TransactionNotFound, ChainAccessError) as exc:
            logger.debug("transaction input fetch failed for %s: %s", tx_hash, exc)
            return ""
        payload = tx.get("input") or tx.get("data") or b""
        return to_hex(payload)

    async def get_logs(self, address: str, from_block: int, to_block: int) -> List[LogEntry]:
        params = {
            "address": to_checksum_address(address),
            "fromBlock": from_block,
            "toBlock": to_block,
        }
        logs = await self._run_with_fallback(lambda w3: w3.eth.get_logs(params), "get_logs")
        return [LogEntry.from_rpc(lg) for lg in logs]

    async def block_number(self) -> int:
        return int(await self._run_with_fallback(lambda w3: w3.eth.block_number, "block_number"))

    async def watch_logs(
        self,
        address: str,
        stop_event: asyncio.Event,
        poll_interval: float = 4.0,
        start_block: Optional[int] = None,
    ) -> AsyncIterator[LogEntry]:
        """Yield new logs emitted by ``address`` until ``stop_event`` is set."""

        last = start_block - 1 if start_block is not None else await self.block_number()
        while not stop_event.is_set():
            try:
                current = await self.block_number()
                if current > last:
                    logs = await self.get_logs(address, last + 1, current)
                    last = current
                    for log in logs:
                        yield log
            except ChainAccessError as exc:
                logger.warning("log subscription poll failed: %s", exc)
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=poll_interval)
            except asyncio.TimeoutError:
                pass


__all__ = ["ChainAccessError", "Web3ChainClient"]
