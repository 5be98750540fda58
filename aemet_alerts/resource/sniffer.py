"""
Container detection for downloaded AEMET resources.

AEMET data URLs rarely carry a usable extension, so content is checked
before the URL suffix.
"""

from enum import Enum
from urllib.parse import urlparse


class ContainerKind(Enum):
    RAW_XML = 'xml'
    ZIP = 'zip'
    GZIP = 'gzip'
    TAR = 'tar'
    UNKNOWN = 'unknown'


XML_DECLARATION = b'<?xml'
UTF8_BOM = b'\xef\xbb\xbf'
LEADING_WINDOW = 100

# POSIX ustar header magic
TAR_MAGIC = b'ustar'
TAR_MAGIC_OFFSET = 257

GZIP_MAGIC = b'\x1f\x8b'
ZIP_MAGICS = (b'PK\x03\x04', b'PK\x05\x06')

SUFFIX_KINDS = [
    ('.zip', ContainerKind.ZIP),
    ('.gz', ContainerKind.GZIP),
    ('.tgz', ContainerKind.GZIP),
    ('.tar', ContainerKind.TAR),
]


def starts_with_xml_declaration(data: bytes) -> bool:
    """True if the leading window, ignoring whitespace and a BOM, opens with <?xml."""
    head = data[:LEADING_WINDOW].lstrip()
    if head.startswith(UTF8_BOM):
        head = head[len(UTF8_BOM):].lstrip()
    return head.startswith(XML_DECLARATION)


def has_tar_signature(data: bytes) -> bool:
    return data[TAR_MAGIC_OFFSET:TAR_MAGIC_OFFSET + len(TAR_MAGIC)] == TAR_MAGIC


def _suffix_kind(source_hint: str) -> ContainerKind:
    path = (urlparse(source_hint).path or source_hint).lower()
    for suffix, kind in SUFFIX_KINDS:
        if path.endswith(suffix):
            return kind
    return ContainerKind.UNKNOWN


def classify(source_hint: str, data: bytes) -> ContainerKind:
    """
    Classify a downloaded buffer.

    Args:
        source_hint: URL or file name the data came from
        data: Raw bytes

    Returns:
        ContainerKind, UNKNOWN when nothing matches
    """
    if starts_with_xml_declaration(data):
        return ContainerKind.RAW_XML

    if has_tar_signature(data):
        return ContainerKind.TAR

    if data.startswith(GZIP_MAGIC):
        return ContainerKind.GZIP

    if data.startswith(ZIP_MAGICS):
        return ContainerKind.ZIP

    return _suffix_kind(source_hint or '')
