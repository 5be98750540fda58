"""
Character decoding of extracted CAP payloads.

AEMET publishes CAP files either as UTF-8 or as ISO-8859-15 with a matching
XML declaration. The declaration is trusted; no other detection is done.
"""

import codecs
import re
from typing import Optional

PROLOG_WINDOW = 200
DEFAULT_ENCODING = 'utf-8'

# codec names as reported by codecs.lookup()
LATIN_CODECS = ('iso8859-1', 'iso8859-15')
LATIN_FALLBACK = 'iso-8859-15'

_ENCODING_RE = re.compile(r'encoding\s*=\s*["\']([^"\']+)["\']', re.IGNORECASE)


def declared_encoding(buf: bytes) -> Optional[str]:
    """Encoding named in the XML prolog, lower-cased, or None."""
    head = buf[:PROLOG_WINDOW].decode('ascii', errors='replace')
    match = _ENCODING_RE.search(head)
    if not match:
        return None
    return match.group(1).strip().lower()


def latin_codec(label: str) -> Optional[str]:
    """Python codec for a Latin-family label, None for anything else."""
    try:
        name = codecs.lookup(label).name
    except LookupError:
        return LATIN_FALLBACK if 'latin' in label.lower() else None
    return name if name in LATIN_CODECS else None


def decode(buf: bytes, encoding: Optional[str] = None) -> str:
    """
    Decode a payload to text.

    Args:
        buf: Raw payload bytes
        encoding: Encoding hint; read from the prolog when not given

    Returns:
        Decoded text. Undecodable bytes become U+FFFD, this never raises.
    """
    label = encoding or declared_encoding(buf) or DEFAULT_ENCODING

    # both Latin codecs map all 256 byte values
    codec = latin_codec(label)
    if codec:
        return buf.decode(codec)

    return buf.decode('utf-8-sig', errors='replace')


def decode_payload(payload) -> str:
    """Decode a Payload using the encoding hint it was extracted with."""
    return decode(payload.data, payload.encoding)
