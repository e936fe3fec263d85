"""Launchpad watcher: turns launchpad transactions into Telegram alerts.

Every log emitted by the launchpad points at a transaction.  The receipt
of that transaction is correlated into a launch and/or lock fact, the new
token is probed for socials and fee mechanics, and one alert per fact is
posted.  Each transaction hash is handled at most once per process.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import functools
import json
import logging
import os
import re
import signal
import threading
import time
from typing import Awaitable, Callable, Iterable, List, Optional, Set

from abi_catalog import EventCatalog, fetch_abi, fetch_abi_sync, match_receipt
from chain_access import ChainAccessError, Web3ChainClient
from launch_config import ConfigError, LaunchWatchConfig, load_config
from launch_messages import (
    render_catalog_launch,
    render_launch_message,
    render_lock_message,
    token_buttons,
)
from launch_metrics import build_specs, compute_launch_metrics
from log_decoders import LogEntry, Receipt
from mechanism_probe import MechanismSnapshot, read_mechanisms
from price_feed import fetch_native_usd
from receipt_correlator import LaunchFact, LockFact, detect_launch, detect_lock
from social_discovery import read_socials
from telegram_notifier import TelegramNotifier

logger = logging.getLogger(__name__)

LOG_FORMAT = "[%(levelname)s] %(asctime)s - %(message)s"
_LATEST_OFFSET_RE = re.compile(r"^latest-(\d+)$")


def configure_logging(level_name: Optional[str] = None) -> None:
    level_name = (level_name or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler()],
        force=True,
    )


def log_event(
    level: int,
    action: str,
    message: str,
    *,
    tx: Optional[str] = None,
    latency_ms: Optional[float] = None,
    error: Optional[str] = None,
    context: Optional[dict] = None,
) -> None:
    """Emit a structured log entry with standard metadata."""

    parts = []
    if action:
        parts.append(f"[{action}]")
    parts.append(message)

    meta: List[str] = []
    if tx:
        meta.append(f"tx={tx}")
    if latency_ms is not None:
        meta.append(f"latency={latency_ms:.2f}ms")
    if error:
        meta.append(f"error={error}")
    if context:
        try:
            context_str = json.dumps(context, sort_keys=True, default=str)
        except TypeError:
            context_str = str(context)
        meta.append(f"context={context_str}")

    text = " ".join(parts)
    if meta:
        text = f"{text} | {' '.join(meta)}"

    logger.log(level, text)


class SeenTransactions:
    """Process-lifetime record of handled transaction hashes.

    ``claim`` is the only way in: it atomically checks both the finished
    and in-flight sets, so a hash delivered by backfill and by the live
    poll at the same time is processed once.
    """

    def __init__(self) -> None:
        self._done: Set[str] = set()
        self._inflight: Set[str] = set()
        self._lock = threading.Lock()

    def claim(self, tx_hash: str) -> bool:
        if not tx_hash:
            return False
        key = tx_hash.lower()
        with self._lock:
            if key in self._done or key in self._inflight:
                return False
            self._inflight.add(key)
            return True

    def mark_done(self, tx_hash: str) -> None:
        key = tx_hash.lower()
        with self._lock:
            self._inflight.discard(key)
            self._done.add(key)

    def release(self, tx_hash: str) -> None:
        with self._lock:
            self._inflight.discard(tx_hash.lower())

    def __contains__(self, tx_hash: object) -> bool:
        if not isinstance(tx_hash, str):
            return False
        with self._lock:
            return tx_hash.lower() in self._done

    def __len__(self) -> int:
        with self._lock:
            return len(self._done)


PriceFeed = Callable[[], Awaitable[float]]


class LaunchWatcher:
    def __init__(
        self,
        config: LaunchWatchConfig,
        chain,
        notifier,
        *,
        price_feed: PriceFeed,
        catalog: Optional[EventCatalog] = None,
        seen: Optional[SeenTransactions] = None,
    ):
        self.config = config
        self.chain = chain
        self.notifier = notifier
        self.price_feed = price_feed
        self.catalog = catalog
        self.seen = seen if seen is not None else SeenTransactions()

    def _buttons(self, token: Optional[str]):
        return token_buttons(self.config.token_url_template, self.config.token_button_label, token)

    async def _notify(self, html: str, token: Optional[str], tx_hash: str, kind: str) -> int:
        ok = await self.notifier.send(html, self._buttons(token))
        if ok:
            log_event(logging.INFO, "notify", f"{kind} alert sent", tx=tx_hash, context={"token": token})
            return 1
        log_event(logging.WARNING, "notify", f"{kind} alert not delivered", tx=tx_hash, context={"token": token})
        return 0

    async def _handle_with_catalog(self, receipt: Receipt) -> Optional[int]:
        matches = match_receipt(
            self.catalog,
            receipt,
            self.config.launchpad_address,
            self.config.create_event_names,
            self.config.lock_event_names,
        )
        if not matches:
            return None
        sent = 0
        for match in matches:
            if match.kind == "create":
                html = render_catalog_launch(match.token, match.name, match.symbol)
            else:
                html = render_lock_message(LockFact(match.token, receipt.transaction_hash))
            sent += await self._notify(html, match.token, receipt.transaction_hash, match.kind)
        return sent

    async def _enrich(self, fact: LaunchFact):
        tx_input = await self.chain.get_transaction_input(fact.transaction_hash)
        socials, snapshot, native_usd = await asyncio.gather(
            read_socials(
                self.chain,
                fact.token,
                tx_input,
                social_keys=self.config.social_keys,
                mapping_funcs=self.config.socials_mapping_funcs,
            ),
            read_mechanisms(
                self.chain,
                fact.token,
                uint_keys=self.config.mech_uint_keys,
                bool_keys=self.config.mech_bool_keys,
                uint_mapping_funcs=self.config.mech_mapping_uint_funcs,
                bool_mapping_funcs=self.config.mech_mapping_bool_funcs,
            ),
            self.price_feed(),
            return_exceptions=True,
        )
        if isinstance(socials, Exception):
            log_event(logging.WARNING, "socials", "Social discovery failed", tx=fact.transaction_hash, error=str(socials))
            socials = {}
        if isinstance(snapshot, Exception):
            log_event(logging.WARNING, "mechanisms", "Mechanism probe failed", tx=fact.transaction_hash, error=str(snapshot))
            snapshot = MechanismSnapshot()
        if isinstance(native_usd, Exception):
            log_event(logging.WARNING, "price", "Price lookup failed", tx=fact.transaction_hash, error=str(native_usd))
            native_usd = 0.0
        return socials, snapshot, native_usd

    async def _announce_launch(self, fact: LaunchFact) -> int:
        socials, snapshot, native_usd = await self._enrich(fact)
        metrics = compute_launch_metrics(fact, native_usd)
        specs = build_specs(snapshot, self.config.key_denominators)
        html = render_launch_message(fact, metrics, socials, specs, self.config.native_symbol)
        return await self._notify(html, fact.token, fact.transaction_hash, "launch")

    async def handle_receipt(self, receipt: Receipt) -> int:
        """Process one receipt and return how many alerts were delivered."""

        if self.catalog is not None and len(self.catalog):
            handled = await self._handle_with_catalog(receipt)
            if handled is not None:
                return handled

        sent = 0
        fact = await detect_launch(
            receipt, self.config.launchpad_address, self.chain, weth_hint=self.config.weth_address
        )
        if fact is not None:
            sent += await self._announce_launch(fact)

        lock = detect_lock(receipt, self.config.launchpad_address)
        if lock is not None:
            sent += await self._notify(
                render_lock_message(lock), lock.contract_address, receipt.transaction_hash, "lock"
            )
        return sent

    async def process_transaction(self, tx_hash: str) -> int:
        if not self.seen.claim(tx_hash):
            return 0
        start = time.perf_counter()
        try:
            receipt = await self.chain.get_receipt(tx_hash)
            sent = await self.handle_receipt(receipt) if receipt is not None else 0
        except asyncio.CancelledError:
            self.seen.release(tx_hash)
            raise
        except Exception as exc:  # per-receipt isolation
            self.seen.release(tx_hash)
            log_event(
                logging.ERROR,
                "process_tx",
                "Receipt processing failed",
                tx=tx_hash,
                latency_ms=round((time.perf_counter() - start) * 1000, 2),
                error=str(exc) or type(exc).__name__,
            )
            return 0
        self.seen.mark_done(tx_hash)
        log_event(
            logging.DEBUG,
            "process_tx",
            "Receipt processed" if receipt is not None else "Receipt not found",
            tx=tx_hash,
            latency_ms=round((time.perf_counter() - start) * 1000, 2),
            context={"alerts": sent},
        )
        return sent

    async def process_logs(self, logs: Iterable[LogEntry]) -> int:
        sent = 0
        for log in logs:
            sent += await self.process_transaction(log.transaction_hash)
        return sent

    async def resolve_from_block(self, spec: Optional[str]) -> Optional[int]:
        spec = (spec or "").strip()
        if not spec:
            return None
        match = _LATEST_OFFSET_RE.match(spec)
        if match:
            latest = await self.chain.block_number()
            return max(0, latest - int(match.group(1)))
        try:
            return int(spec)
        except ValueError:
            log_event(logging.WARNING, "backfill", "Ignoring unparseable FROM_BLOCK", context={"value": spec})
            return None

    async def backfill(self, from_block: int) -> int:
        """Replay launchpad logs from ``from_block`` to head; return the head block."""

        latest = await self.chain.block_number()
        chunk = max(1, self.config.backfill_chunk_blocks)
        log_event(
            logging.INFO,
            "backfill",
            f"Backfilling logs {from_block}..{latest}",
            context={"launchpad": self.config.launchpad_address},
        )
        for start in range(from_block, latest + 1, chunk):
            end = min(start + chunk - 1, latest)
            try:
                logs = await self.chain.get_logs(self.config.launchpad_address, start, end)
            except ChainAccessError as exc:
                log_event(logging.ERROR, "backfill", f"get_logs {start}..{end} failed", error=str(exc))
                continue
            await self.process_logs(logs)
        return latest

    async def run_live(self, stop_event: asyncio.Event, start_block: Optional[int] = None) -> None:
        log_event(logging.INFO, "live", "Listening for launchpad logs", context={"launchpad": self.config.launchpad_address})
        async for log in self.chain.watch_logs(
            self.config.launchpad_address,
            stop_event,
            poll_interval=self.config.poll_interval,
            start_block=start_block,
        ):
            await self.process_transaction(log.transaction_hash)

    async def load_catalog(self) -> None:
        abi = await fetch_abi(self.config.launchpad_address, self.config.chain_id)
        if abi:
            self.catalog = EventCatalog.from_abi(abi)
            log_event(logging.INFO, "abi", "Launchpad ABI loaded", context={"events": len(self.catalog)})
        else:
            log_event(logging.WARNING, "abi", "Launchpad ABI not found; using log-based detection")

    async def run(self, stop_event: asyncio.Event, from_block: Optional[str] = None) -> None:
        if self.config.use_abi_catalog and self.catalog is None:
            await self.load_catalog()
        start_block = None
        first = await self.resolve_from_block(from_block if from_block is not None else self.config.from_block)
        if first is not None:
            start_block = await self.backfill(first) + 1
        await self.run_live(stop_event, start_block)


def build_watcher(config: LaunchWatchConfig) -> LaunchWatcher:
    chain = Web3ChainClient(config.rpc_urls, call_timeout=config.rpc_call_timeout)
    notifier = TelegramNotifier(config.bot_token, config.chat_id, timeout=config.http_timeout)
    price_feed = functools.partial(
        fetch_native_usd,
        price_id=config.native_price_id,
        pair=config.native_price_pair,
        timeout=config.http_timeout,
    )
    return LaunchWatcher(config, chain, notifier, price_feed=price_feed)


async def main_async(config: LaunchWatchConfig, from_block: Optional[str] = None) -> None:
    watcher = build_watcher(config)
    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def _on_stop() -> None:
        log_event(logging.INFO, "shutdown", "Stop signal received")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, _on_stop)

    run_task = asyncio.create_task(watcher.run(stop_event, from_block))
    wait_task = asyncio.create_task(stop_event.wait())
    done, pending = await asyncio.wait({run_task, wait_task}, return_when=asyncio.FIRST_COMPLETED)
    for task in pending:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
    if run_task in done and run_task.exception():
        raise run_task.exception()


async def process_single(config: LaunchWatchConfig, tx_hash: str) -> int:
    watcher = build_watcher(config)
    if config.use_abi_catalog:
        await watcher.load_catalog()
    return await watcher.process_transaction(tx_hash)


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Launchpad token launch watcher")
    parser.add_argument("--from-block", help="backfill start: block number or latest-N (overrides FROM_BLOCK)")
    parser.add_argument("--tx", metavar="HASH", help="process a single transaction and exit")
    parser.add_argument("--dump-abi", action="store_true", help="report whether Etherscan has the launchpad ABI")
    args = parser.parse_args(argv)

    configure_logging()
    try:
        config = load_config()
    except ConfigError as exc:
        log_event(logging.ERROR, "config", "Invalid configuration", error=str(exc))
        raise SystemExit(1) from exc

    if args.dump_abi:
        abi = fetch_abi_sync(config.launchpad_address, config.chain_id)
        if abi is None:
            print(f"No verified ABI for {config.launchpad_address} on chain {config.chain_id}")
        else:
            events = [e.get("name") for e in abi if e.get("type") == "event"]
            print(f"ABI found with {len(abi)} entries; events: {', '.join(events) or '-'}")
        return

    try:
        if args.tx:
            sent = asyncio.run(process_single(config, args.tx))
            log_event(logging.INFO, "tx", f"Processed single transaction, {sent} alert(s) sent", tx=args.tx)
            return
        asyncio.run(main_async(config, args.from_block))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
