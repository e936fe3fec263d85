"""Discover a freshly launched token's social links straight from the chain.

Launchpad tokens do not share an interface, so links are probed in layers:
direct zero-argument getters, a ``contractURI`` JSON document (data URI,
remote URL or inline JSON), mapping-style getters keyed by the social
name, a tuple getter, and finally printable strings buried in the launch
transaction's calldata.  A layer only fills categories that are still
empty.  A closing pass makes sure an X/Twitter URL never sits in the
website slot.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import html
import json
import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
from urllib.parse import unquote

import aiohttp

from contract_calls import (
    MappingGetter,
    ViewCall,
    first_success,
    parse_mapping_getters,
    string_getter,
    try_mapping_string,
    try_string,
    try_tuple,
)
from launch_config import DEFAULT_SOCIAL_KEYS
from launch_config import DEFAULT_SOCIALS_MAPPING_FUNCS as DEFAULT_SOCIALS_MAPPING_SPEC

logger = logging.getLogger(__name__)

SOCIAL_FETCH_TIMEOUT = 12
DEFAULT_SOCIALS_MAPPING_FUNCS = parse_mapping_getters(DEFAULT_SOCIALS_MAPPING_SPEC)

TWITTER_BASE = "https://twitter.com/"
TELEGRAM_BASE = "https://t.me/"
HANDLE_BASES = {"twitter": TWITTER_BASE, "telegram": TELEGRAM_BASE}

# (category, candidate getter names, base prepended to a bare handle)
DIRECT_GETTERS: Tuple[Tuple[str, Tuple[str, ...], Optional[str]], ...] = (
    ("website", ("website", "web", "site", "url", "homepage"), None),
    ("twitter", ("twitter", "x", "twitterUrl"), TWITTER_BASE),
    ("telegram", ("telegram", "tg", "telegramUrl"), TELEGRAM_BASE),
    ("discord", ("discord", "discordUrl"), None),
)
CONTRACT_URI_GETTER = string_getter("contractURI")
SOCIALS_TUPLE_GETTER = ViewCall("getSocials", (), ("string", "string", "string", "string"))

_X_RE = re.compile(r"https?://(www\.)?(twitter\.com|x\.com)/", re.IGNORECASE)
_TELEGRAM_RE = re.compile(r"https?://(t\.me|telegram(\.me|\.org))/", re.IGNORECASE)
_DISCORD_RE = re.compile(r"https?://(discord\.gg|discord(app)?\.com)/", re.IGNORECASE)
_HTTP_RE = re.compile(r"^https?://", re.IGNORECASE)
_DATA_JSON_RE = re.compile(r"^data:application/json", re.IGNORECASE)

SOCIAL_LABELS = (
    ("website", "website"),
    ("twitter", "X (Twitter)"),
    ("telegram", "telegram"),
    ("discord", "discord"),
)

_JSON_BUCKET_KEYS = ("links", "socials", "attributes", "extensions", "metadata", "data")
_HANDLE_KEYS = (
    (("twitter", "x"), "twitter", TWITTER_BASE),
    (("telegram", "tg"), "telegram", TELEGRAM_BASE),
    (("website", "site", "homepage"), "website", None),
)


def _create_session(**kwargs) -> aiohttp.ClientSession:
    if "trust_env" not in kwargs:
        kwargs["trust_env"] = True
    if "timeout" not in kwargs:
        kwargs["timeout"] = aiohttp.ClientTimeout(total=SOCIAL_FETCH_TIMEOUT)
    return aiohttp.ClientSession(**kwargs)


def is_x_url(url: Any) -> bool:
    return bool(_X_RE.match(str(url or "").strip()))


def classify_url(url: Any) -> str:
    """Return ``twitter``, ``telegram``, ``discord``, ``website`` or ``unknown``."""

    text = str(url or "").strip().lower()
    if _X_RE.match(text):
        return "twitter"
    if _TELEGRAM_RE.match(text):
        return "telegram"
    if _DISCORD_RE.match(text):
        return "discord"
    if _HTTP_RE.match(text):
        return "website"
    return "unknown"


def normalize_url(value: Optional[str], base: Optional[str] = None) -> Optional[str]:
    if not value:
        return None
    if _HTTP_RE.match(value):
        return value
    if base:
        return f"{base}{value.lstrip('@')}"
    return value


def parse_data_url_json(value: str) -> Optional[Any]:
    """Decode a ``data:application/json`` URI (base64 or percent-encoded)."""

    if not _DATA_JSON_RE.match(value or ""):
        return None
    header, sep, payload = value.partition(",")
    if not sep or not payload:
        return None
    try:
        if ";base64" in header.lower():
            text = base64.b64decode(payload).decode("utf-8")
        else:
            text = unquote(payload)
        return json.loads(text)
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return None


def parse_json_text(value: str) -> Optional[Any]:
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        return None


async def _fetch_json(session: aiohttp.ClientSession, url: str) -> Tuple[Optional[Any], Optional[str]]:
    try:
        async with session.get(url) as resp:
            if resp.status == 429:
                return None, "rate_limited"
            resp.raise_for_status()
            return await resp.json(content_type=None), None
    except aiohttp.ClientResponseError as exc:
        return None, f"http_{exc.status}"
    except (aiohttp.ClientError, asyncio.TimeoutError, OSError):
        return None, "network_error"
    except ValueError:
        return None, "invalid_json"


async def fetch_json_maybe(session: aiohttp.ClientSession, url: str) -> Optional[Any]:
    if not _HTTP_RE.match(url or ""):
        return None
    payload, reason = await _fetch_json(session, url)
    if reason:
        logger.debug("contractURI fetch %s failed: %s", url, reason)
    return payload


def pick_socials_from_json(obj: Any) -> Dict[str, str]:
    """Mine a metadata document for anything that looks like a social link."""

    if not isinstance(obj, dict):
        return {}
    buckets: List[dict] = [obj]
    for key in _JSON_BUCKET_KEYS:
        buckets.append(obj.get(key))
    properties = obj.get("properties")
    if isinstance(properties, dict):
        buckets.extend([properties.get("links"), properties.get("socials")])

    bag: Dict[str, str] = {}
    for bucket in buckets:
        if not isinstance(bucket, dict):
            continue
        for key, value in bucket.items():
            if not isinstance(value, str) or not value.strip():
                continue
            url = value.strip()
            category = classify_url(url)
            if category != "unknown":
                bag.setdefault(category, url)
                continue
            lowered = str(key).lower()
            for names, slot, base in _HANDLE_KEYS:
                if lowered in names and slot not in bag:
                    bag[slot] = normalize_url(url, base)
    return bag


def extract_ascii_strings(hex_input: str, min_length: int = 4) -> List[str]:
    """Return the distinct printable ASCII runs in a hex payload, in order."""

    if not hex_input or len(hex_input) < 10 or not hex_input.startswith("0x"):
        return []
    try:
        raw = bytes.fromhex(hex_input[2:])
    except ValueError:
        return []
    runs: List[str] = []
    current = bytearray()
    for byte in raw:
        if 0x20 <= byte <= 0x7E:
            current.append(byte)
            continue
        if len(current) >= min_length:
            runs.append(current.decode("ascii"))
        current = bytearray()
    if len(current) >= min_length:
        runs.append(current.decode("ascii"))

    seen = set()
    ordered: List[str] = []
    for run in runs:
        text = run.strip()
        if text and text not in seen:
            seen.add(text)
            ordered.append(text)
    return ordered


def socials_from_strings(strings: Iterable[str]) -> Dict[str, str]:
    found: Dict[str, str] = {}
    for raw in strings:
        text = raw.strip()
        category = classify_url(text)
        if category != "unknown" and category not in found:
            found[category] = text
    return found


def resolve_website_and_x(socials: Dict[str, Optional[str]]) -> Dict[str, str]:
    """Make sure X/Twitter URLs live in ``twitter`` and nowhere in ``website``."""

    out = {k: v for k, v in socials.items() if v}
    website = out.get("website")
    twitter = out.get("twitter")

    picked_twitter = twitter if is_x_url(twitter) else None
    picked_website = website if website and not is_x_url(website) else None
    for value in out.values():
        category = classify_url(value)
        if picked_twitter is None and category == "twitter":
            picked_twitter = value
        if picked_website is None and category == "website":
            picked_website = value

    out.pop("twitter", None)
    out.pop("website", None)
    if picked_website:
        out["website"] = picked_website
    if picked_twitter:
        out["twitter"] = picked_twitter
    return out


def socials_line(socials: Dict[str, str]) -> str:
    """Render the anchor row shown under the token header (may be empty)."""

    parts = []
    for key, label in SOCIAL_LABELS:
        url = socials.get(key)
        if url:
            parts.append(f'<a href="{html.escape(url, quote=True)}">{label}</a>')
    return " · ".join(parts)


def _fill(target: Dict[str, str], found: Dict[str, Any]) -> None:
    for key, value in found.items():
        if value and not target.get(key):
            target[key] = value


async def _read_direct_getters(chain, token: str, out: Dict[str, str]) -> None:
    for category, names, base in DIRECT_GETTERS:
        if out.get(category):
            continue
        value = await first_success(
            (lambda name=name: try_string(chain, token, string_getter(name))) for name in names
        )
        if value:
            out[category] = normalize_url(value, base)


async def _read_contract_uri(chain, token: str, session: Optional[aiohttp.ClientSession]) -> Dict[str, str]:
    uri = await try_string(chain, token, CONTRACT_URI_GETTER)
    if not uri:
        return {}
    document = parse_data_url_json(uri)
    if document is None and _HTTP_RE.match(uri):
        if session is None:
            async with _create_session() as own_session:
                document = await fetch_json_maybe(own_session, uri)
        else:
            document = await fetch_json_maybe(session, uri)
    if document is None:
        document = parse_json_text(uri)
    return pick_socials_from_json(document)


async def _read_mapping_getters(
    chain,
    token: str,
    out: Dict[str, str],
    social_keys: Sequence[str],
    mapping_funcs: Sequence[MappingGetter],
) -> None:
    for getter in mapping_funcs:
        for key in social_keys:
            if out.get(key):
                continue
            value = await try_mapping_string(chain, token, getter, key)
            if not value:
                continue
            category = classify_url(value)
            slot = category if category in ("twitter", "telegram", "discord") else key
            if not out.get(slot):
                out[slot] = normalize_url(value, HANDLE_BASES.get(slot))


async def read_socials(
    chain,
    token: str,
    tx_input: Optional[str] = None,
    *,
    social_keys: Sequence[str] = DEFAULT_SOCIAL_KEYS,
    mapping_funcs: Sequence[MappingGetter] = DEFAULT_SOCIALS_MAPPING_FUNCS,
    session: Optional[aiohttp.ClientSession] = None,
) -> Dict[str, str]:
    """Return ``{website|twitter|telegram|discord: url}`` for ``token``."""

    out: Dict[str, str] = {}

    await _read_direct_getters(chain, token, out)
    _fill(out, await _read_contract_uri(chain, token, session))
    await _read_mapping_getters(chain, token, out, social_keys, mapping_funcs)
    positional = await try_tuple(chain, token, SOCIALS_TUPLE_GETTER, social_keys)
    _fill(out, {k: normalize_url(v, HANDLE_BASES.get(k)) for k, v in positional.items()})
    if tx_input:
        _fill(out, socials_from_strings(extract_ascii_strings(tx_input)))

    return resolve_website_and_x(out)


__all__ = [
    "read_socials",
    "classify_url",
    "normalize_url",
    "is_x_url",
    "parse_data_url_json",
    "parse_json_text",
    "fetch_json_maybe",
    "pick_socials_from_json",
    "extract_ascii_strings",
    "socials_from_strings",
    "resolve_website_and_x",
    "socials_line",
]
