import asyncio
import base64
import json
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

from eth_utils import keccak

import social_discovery
from fake_chain import TOKEN, FakeChain


def _data_uri(doc):
    return "data:application/json;base64," + base64.b64encode(json.dumps(doc).encode()).decode()


def _calldata(*chunks: bytes) -> str:
    return "0x" + b"".join(chunks).hex()


class UrlHelperTests(unittest.TestCase):
    def test_classify_url(self):
        cases = {
            "https://x.com/moon": "twitter",
            "http://www.twitter.com/moon": "twitter",
            "https://t.me/moon": "telegram",
            "https://telegram.org/moon": "telegram",
            "https://discord.gg/abc": "discord",
            "https://discordapp.com/invite/abc": "discord",
            "https://moon.io": "website",
            "moon": "unknown",
            None: "unknown",
        }
        for url, expected in cases.items():
            with self.subTest(url=url):
                self.assertEqual(social_discovery.classify_url(url), expected)

    def test_normalize_url_expands_handles(self):
        self.assertEqual(social_discovery.normalize_url("@moon", "https://twitter.com/"), "https://twitter.com/moon")
        self.assertEqual(social_discovery.normalize_url("https://t.me/a", "https://t.me/"), "https://t.me/a")
        self.assertEqual(social_discovery.normalize_url("moon.io"), "moon.io")
        self.assertIsNone(social_discovery.normalize_url(""))

    def test_parse_data_url_json(self):
        self.assertEqual(social_discovery.parse_data_url_json(_data_uri({"a": 1})), {"a": 1})
        self.assertEqual(
            social_discovery.parse_data_url_json('data:application/json;utf8,{"a":%202}'), {"a": 2}
        )
        self.assertIsNone(social_discovery.parse_data_url_json("data:application/json;base64,!!!"))
        self.assertIsNone(social_discovery.parse_data_url_json("https://moon.io/meta.json"))

    def test_parse_json_text(self):
        self.assertEqual(social_discovery.parse_json_text('{"x": "y"}'), {"x": "y"})
        self.assertIsNone(social_discovery.parse_json_text("not json"))


class PickSocialsTests(unittest.TestCase):
    def test_nested_buckets_and_handles(self):
        doc = {
            "name": "Moon",
            "external_url": "https://moon.io",
            "properties": {"socials": {"twitter": "@moonx"}},
            "links": {"chat": "https://t.me/moonchat"},
            "extensions": {"discord": "https://discord.gg/moon"},
        }
        self.assertEqual(
            social_discovery.pick_socials_from_json(doc),
            {
                "website": "https://moon.io",
                "telegram": "https://t.me/moonchat",
                "discord": "https://discord.gg/moon",
                "twitter": "https://twitter.com/moonx",
            },
        )

    def test_non_dict_documents(self):
        self.assertEqual(social_discovery.pick_socials_from_json(["https://moon.io"]), {})
        self.assertEqual(social_discovery.pick_socials_from_json(None), {})


class CalldataScanTests(unittest.TestCase):
    def test_extract_ascii_strings_dedupes_and_drops_short_runs(self):
        payload = _calldata(
            b"\xa9\x05\x9c\xbb", b"\x00" * 8, b"https://t.me/moon", b"\x00\x01", b"abc", b"\x00",
            b"https://t.me/moon", b"\x00", b"  padded  ",
        )
        self.assertEqual(
            social_discovery.extract_ascii_strings(payload), ["https://t.me/moon", "padded"]
        )

    def test_extract_ascii_strings_rejects_bad_input(self):
        self.assertEqual(social_discovery.extract_ascii_strings(""), [])
        self.assertEqual(social_discovery.extract_ascii_strings("0x12"), [])
        self.assertEqual(social_discovery.extract_ascii_strings("0xzzzzzzzzzz"), [])

    def test_socials_from_strings_keeps_first_per_category(self):
        found = social_discovery.socials_from_strings(
            ["hello", "https://moon.io", "https://x.com/a", "https://x.com/b"]
        )
        self.assertEqual(found, {"website": "https://moon.io", "twitter": "https://x.com/a"})


class ResolveWebsiteAndXTests(unittest.TestCase):
    def test_x_url_in_website_slot_moves_to_twitter(self):
        self.assertEqual(
            social_discovery.resolve_website_and_x({"website": "https://x.com/foo"}),
            {"twitter": "https://x.com/foo"},
        )

    def test_swapped_slots_are_corrected(self):
        resolved = social_discovery.resolve_website_and_x(
            {"website": "https://twitter.com/moon", "twitter": "https://moon.io"}
        )
        self.assertEqual(resolved, {"website": "https://moon.io", "twitter": "https://twitter.com/moon"})

    def test_other_slots_untouched_and_empty_dropped(self):
        resolved = social_discovery.resolve_website_and_x(
            {"website": "https://moon.io", "telegram": "https://t.me/m", "discord": ""}
        )
        self.assertEqual(resolved, {"website": "https://moon.io", "telegram": "https://t.me/m"})

    def test_bare_domain_website_is_kept(self):
        self.assertEqual(
            social_discovery.resolve_website_and_x({"website": "moon.io", "twitter": "https://x.com/m"}),
            {"website": "moon.io", "twitter": "https://x.com/m"},
        )

    def test_socials_line(self):
        line = social_discovery.socials_line({"twitter": "https://x.com/a", "website": "https://m.io/?a=1&b=2"})
        self.assertEqual(
            line,
            '<a href="https://m.io/?a=1&amp;b=2">website</a> · <a href="https://x.com/a">X (Twitter)</a>',
        )
        self.assertEqual(social_discovery.socials_line({}), "")


class ReadSocialsTests(unittest.IsolatedAsyncioTestCase):
    async def test_direct_getters_then_contract_uri_fill_only_empty_slots(self):
        chain = FakeChain()
        chain.set_view(TOKEN, "website()", "https://x.com/moon")
        chain.set_view(TOKEN, "tg()", "moonchat")
        chain.set_view(
            TOKEN,
            "contractURI()",
            _data_uri({"telegram": "https://t.me/other", "discord": "https://discord.gg/moon"}),
        )

        socials = await social_discovery.read_socials(chain, TOKEN)

        self.assertEqual(
            socials,
            {
                "twitter": "https://x.com/moon",
                "telegram": "https://t.me/moonchat",
                "discord": "https://discord.gg/moon",
            },
        )

    async def test_remote_contract_uri_is_fetched(self):
        chain = FakeChain()
        chain.set_view(TOKEN, "contractURI()", "https://meta.example/token.json")
        fetch = AsyncMock(return_value={"website": "https://moon.io"})
        session = MagicMock()

        with patch.object(social_discovery, "fetch_json_maybe", fetch):
            socials = await social_discovery.read_socials(chain, TOKEN, session=session)

        fetch.assert_awaited_once_with(session, "https://meta.example/token.json")
        self.assertEqual(socials, {"website": "https://moon.io"})

    async def test_inline_json_contract_uri(self):
        chain = FakeChain()
        chain.set_view(TOKEN, "contractURI()", '{"links": {"x": "moonx"}}')
        socials = await social_discovery.read_socials(chain, TOKEN)
        self.assertEqual(socials, {"twitter": "https://twitter.com/moonx"})

    async def test_bytes32_mapping_getter_and_classification(self):
        chain = FakeChain()
        chain.set_view(TOKEN, "links(bytes32)", "https://moon.io", args=(keccak(text="website"),))
        chain.set_view(TOKEN, "socials(string)", "https://t.me/moon", args=("discord",))

        socials = await social_discovery.read_socials(chain, TOKEN)

        self.assertEqual(socials, {"website": "https://moon.io", "telegram": "https://t.me/moon"})

    async def test_tuple_getter_maps_positionally(self):
        chain = FakeChain()
        chain.set_view(TOKEN, "getSocials()", ("https://moon.io", "moonx", "", "https://discord.gg/m"))
        socials = await social_discovery.read_socials(chain, TOKEN)
        self.assertEqual(
            socials,
            {"website": "https://moon.io", "twitter": "https://twitter.com/moonx", "discord": "https://discord.gg/m"},
        )

    async def test_calldata_scan_is_last_resort(self):
        chain = FakeChain()
        chain.set_view(TOKEN, "website()", "https://moon.io")
        tx_input = _calldata(b"\x12\x34\x56\x78", b"\x00" * 4, b"https://other.io", b"\x00", b"https://t.me/fromtx")

        socials = await social_discovery.read_socials(chain, TOKEN, tx_input)

        self.assertEqual(socials, {"website": "https://moon.io", "telegram": "https://t.me/fromtx"})

    async def test_bare_domain_from_getter_survives_normalization(self):
        chain = FakeChain()
        chain.set_view(TOKEN, "website()", "moon.io")
        chain.set_view(TOKEN, "links(string)", "moon.io", args=("website",))
        self.assertEqual(await social_discovery.read_socials(chain, TOKEN), {"website": "moon.io"})

    async def test_timed_out_metadata_fetch_yields_nothing(self):
        chain = FakeChain()
        chain.set_view(TOKEN, "contractURI()", "https://meta.example/token.json")
        session = MagicMock()
        session.get.side_effect = asyncio.TimeoutError()

        socials = await social_discovery.read_socials(chain, TOKEN, session=session)

        self.assertEqual(socials, {})
        session.get.assert_called_once_with("https://meta.example/token.json")

    async def test_reverting_probes_yield_empty_set(self):
        chain = FakeChain()
        chain.set_view(TOKEN, "website()", RuntimeError("execution reverted"))
        self.assertEqual(await social_discovery.read_socials(chain, TOKEN), {})


if __name__ == "__main__":
    unittest.main()
