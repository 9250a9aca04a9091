import logging
import re
from urllib.parse import urlsplit

from prefsync.share.codec import ShareCodec, SharePayload

logger = logging.getLogger(__name__)

LEGACY_FRAGMENT_KEY = "sp"
FRAGMENT_KEY = "sp2"

_SP2_RE = re.compile(r"[#&]sp2=([^&]+)")
_SP_RE = re.compile(r"[#&]sp=([^&]+)")


def _with_fragment(base: str, key: str, payload: str) -> str:
    parts = urlsplit(base)
    query = f"?{parts.query}" if parts.query else ""
    return f"{parts.scheme}://{parts.netloc}{parts.path}{query}#{key}={payload}"


def build_share_url(payload: str, base: str = "http://localhost/") -> str:
    """Share URL with a legacy ``#sp=`` fragment. Any existing fragment is replaced."""
    return _with_fragment(base, LEGACY_FRAGMENT_KEY, payload)


def build_share_url_v2(payload: str, base: str = "http://localhost/") -> str:
    """Share URL with a current ``#sp2=`` fragment. Any existing fragment is replaced."""
    return _with_fragment(base, FRAGMENT_KEY, payload)


def extract_and_decode_from_url(url: str, codec: ShareCodec) -> SharePayload | None:
    """Decode the share payload embedded in ``url``, preferring ``sp2`` over ``sp``.

    Accepts URLs like:
        https://example.com/app#sp2=eyJ2Ijoi...
        https://example.com/app?x=1#sp=eyJ2Ijoi...
        https://example.com/app#foo=1&sp2=eyJ2Ijoi...

    Returns None if no fragment is present or it doesn't decode.
    """
    m = _SP2_RE.search(url or "")
    if m:
        decoded = codec.decode(m.group(1))
        if decoded:
            return decoded
        logger.debug("Ignoring malformed sp2 fragment")

    m = _SP_RE.search(url or "")
    if m:
        return codec.decode(m.group(1))
    return None
