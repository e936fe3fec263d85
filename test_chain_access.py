import asyncio
import threading
import unittest
from unittest.mock import MagicMock, patch

from eth_abi.abi import encode
from eth_utils import to_checksum_address
from web3.exceptions import TransactionNotFound

import contract_calls
from chain_access import ChainAccessError, Web3ChainClient
from fake_chain import LAUNCHPAD, TOKEN, TX_HASH, topic_for
from signatures import TRANSFER_TOPIC


def _provider(connected=True):
    w3 = MagicMock()
    w3.is_connected.return_value = connected
    return w3


def _raw_log(block_tx=TX_HASH):
    return {
        "address": to_checksum_address(TOKEN),
        "topics": [TRANSFER_TOPIC, topic_for(LAUNCHPAD), topic_for(TOKEN)],
        "data": "0x" + encode(["uint256"], [5]).hex(),
        "transactionHash": block_tx,
    }


class Web3ChainClientTests(unittest.IsolatedAsyncioTestCase):
    def _client(self, providers, urls=None, call_timeout=2):
        urls = urls or list(providers)
        patcher = patch.object(Web3ChainClient, "_make_provider", side_effect=lambda url: providers[url])
        patcher.start()
        self.addCleanup(patcher.stop)
        return Web3ChainClient(urls, call_timeout=call_timeout)

    def test_requires_urls(self):
        with self.assertRaises(ChainAccessError):
            Web3ChainClient(["", None])

    def test_connects_to_first_reachable_provider(self):
        providers = {"a": _provider(connected=False), "b": _provider()}
        with self.assertLogs("chain_access", level="WARNING"):
            client = self._client(providers)
        self.assertIs(client.w3, providers["b"])
        self.assertEqual(client._index, 1)

    async def test_call_view_decodes_or_returns_none(self):
        w3 = _provider()
        client = self._client({"a": w3})
        call = contract_calls.uint_getter("totalSupply")

        w3.eth.call.return_value = encode(["uint256"], [7])
        self.assertEqual(await client.call_view(TOKEN, call), (7,))
        sent = w3.eth.call.call_args.args[0]
        self.assertEqual(sent["to"], to_checksum_address(TOKEN))
        self.assertEqual(sent["data"], call.selector)

        w3.eth.call.return_value = b""
        self.assertIsNone(await client.call_view(TOKEN, call))
        w3.eth.call.return_value = b"\x01"
        self.assertIsNone(await client.call_view(TOKEN, call))
        w3.eth.call.side_effect = ValueError("execution reverted")
        self.assertIsNone(await client.call_view(TOKEN, call))

    async def test_get_receipt(self):
        w3 = _provider()
        client = self._client({"a": w3})
        w3.eth.get_transaction_receipt.return_value = {
            "transactionHash": TX_HASH,
            "to": to_checksum_address(LAUNCHPAD),
            "logs": [_raw_log()],
        }

        receipt = await client.get_receipt(TX_HASH)

        self.assertEqual(receipt.to, LAUNCHPAD)
        self.assertEqual(receipt.logs[0].address, TOKEN)
        self.assertEqual(receipt.logs[0].topic0, TRANSFER_TOPIC)

        w3.eth.get_transaction_receipt.side_effect = TransactionNotFound("missing")
        self.assertIsNone(await client.get_receipt(TX_HASH))

    async def test_transaction_input_is_hex_or_empty(self):
        w3 = _provider()
        client = self._client({"a": w3})
        w3.eth.get_transaction.return_value = {"input": bytes.fromhex("abcdef")}
        self.assertEqual(await client.get_transaction_input(TX_HASH), "0xabcdef")
        w3.eth.get_transaction.side_effect = TransactionNotFound("missing")
        self.assertEqual(await client.get_transaction_input(TX_HASH), "")

    async def test_transport_failure_rotates_provider(self):
        providers = {"a": _provider(), "b": _provider()}
        client = self._client(providers)
        providers["a"].eth.get_logs.side_effect = OSError("connection reset")
        providers["b"].eth.get_logs.return_value = [_raw_log()]

        with self.assertLogs("chain_access", level="ERROR"):
            logs = await client.get_logs(LAUNCHPAD, 1, 2)

        self.assertEqual(len(logs), 1)
        self.assertEqual(client._index, 1)
        params = providers["b"].eth.get_logs.call_args.args[0]
        self.assertEqual(params, {"address": to_checksum_address(LAUNCHPAD), "fromBlock": 1, "toBlock": 2})

    async def test_single_provider_failure_raises(self):
        w3 = _provider()
        client = self._client({"a": w3})
        w3.eth.get_logs.side_effect = OSError("connection reset")
        with self.assertLogs("chain_access", level="ERROR"):
            with self.assertRaises(ChainAccessError):
                await client.get_logs(LAUNCHPAD, 1, 2)

    def _hanging_provider(self):
        release = threading.Event()
        self.addCleanup(release.set)
        w3 = _provider()
        w3.eth.call.side_effect = lambda *args, **kwargs: release.wait(5)
        w3.eth.get_transaction_receipt.side_effect = lambda *args, **kwargs: release.wait(5)
        return w3

    async def test_slow_view_call_times_out_as_no_value(self):
        client = self._client({"a": self._hanging_provider()}, call_timeout=0.05)
        call = contract_calls.string_getter("website")

        self.assertIsNone(await client.call_view(TOKEN, call))
        self.assertIsNone(await contract_calls.try_string(client, TOKEN, call))

    async def test_slow_receipt_fetch_raises_chain_error(self):
        client = self._client({"a": self._hanging_provider()}, call_timeout=0.05)

        with self.assertLogs("chain_access", level="ERROR"):
            with self.assertRaises(ChainAccessError):
                await client.get_receipt(TX_HASH)

    async def test_watch_logs_polls_from_start_block(self):
        w3 = _provider()
        client = self._client({"a": w3})
        w3.eth.block_number = 12
        w3.eth.get_logs.return_value = [_raw_log()]
        stop = asyncio.Event()

        seen = []
        async for log in client.watch_logs(LAUNCHPAD, stop, poll_interval=0.01, start_block=10):
            seen.append(log)
            stop.set()

        self.assertEqual(len(seen), 1)
        params = w3.eth.get_logs.call_args.args[0]
        self.assertEqual((params["fromBlock"], params["toBlock"]), (10, 12))


if __name__ == "__main__":
    unittest.main()
