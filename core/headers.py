"""Header construction for upstream requests and downstream responses."""

import re
from collections.abc import Iterable, Mapping

# Stripped from inbound headers before forwarding. authorization and
# content-type are re-added afterwards.
REQUEST_DENYLIST = frozenset(
    {
        "authorization",
        "content-type",
        "host",
        "connection",
        "keep-alive",
        "proxy-connection",
        "transfer-encoding",
        "upgrade",
        "te",
        "trailers",
        "proxy-authorization",
        "proxy-authenticate",
        "content-length",
    }
)

# Recomputed by the outbound transport.
RESPONSE_DENYLIST = frozenset(
    {
        "transfer-encoding",
        "content-length",
        "connection",
    }
)

# Codings httpx decodes (br and zstd through the httpx[brotli,zstd] extras).
# content-encoding is dropped only when every listed coding was decoded.
DECODED_ENCODINGS = frozenset({"identity", "gzip", "deflate", "br", "zstd"})

DEFAULT_CONTENT_TYPE = "application/json"

_TOKEN = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")
_FORBIDDEN_VALUE_CHARS = re.compile(r"[\r\n\x00]")


def is_valid_header(name: str, value: str) -> bool:
    """Check whether a header can be written by the outbound transport."""
    if not _TOKEN.fullmatch(name) or _FORBIDDEN_VALUE_CHARS.search(value):
        return False
    try:
        value.encode("latin-1")
    except UnicodeEncodeError:
        return False
    return True


def is_decoded_encoding(value: str) -> bool:
    """Whether httpx has already undone every coding in a content-encoding value."""
    codings = [coding.strip().lower() for coding in value.split(",") if coding.strip()]
    return all(coding in DECODED_ENCODINGS for coding in codings)


class HeaderBuilder:
    """Build upstream request headers and downstream response headers."""

    def sanitize(self, incoming: Mapping[str, str]) -> dict[str, str]:
        """Strip hop-by-hop fields, force JSON content-type, pass auth through."""
        authorization = ""
        upstream: dict[str, str] = {}
        for key, value in incoming.items():
            key_lower = key.lower()
            if key_lower == "authorization":
                authorization = str(value)
            if key_lower in REQUEST_DENYLIST:
                continue
            upstream[key_lower] = str(value)

        upstream["content-type"] = DEFAULT_CONTENT_TYPE
        upstream["authorization"] = authorization
        return upstream

    def response_headers(self, headers: Iterable[tuple[str, str]]) -> list[tuple[str, str]]:
        """Filter upstream response headers, keeping duplicates in order."""
        downstream: list[tuple[str, str]] = []
        for key, value in headers:
            if key.lower() in RESPONSE_DENYLIST:
                continue
            if key.lower() == "content-encoding" and is_decoded_encoding(value):
                continue
            if not is_valid_header(key, value):
                continue
            downstream.append((key, value))
        return downstream
