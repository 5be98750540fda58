"""
Extraction of candidate CAP XML documents from downloaded containers.
"""

import gzip
import io
import logging
import os
import tarfile
import tempfile
import zipfile
import zlib
from dataclasses import dataclass
from typing import List, Optional

from ..errors import ExtractionError
from .decoder import declared_encoding, DEFAULT_ENCODING
from .sniffer import (
    ContainerKind, XML_DECLARATION,
    starts_with_xml_declaration, has_tar_signature
)

logger = logging.getLogger(__name__)

XML_SUFFIX = '.xml'

# general purpose flag bit 0
ZIP_ENCRYPTED_FLAG = 0x1


@dataclass(frozen=True)
class Payload:
    """An extracted XML document, still undecoded."""
    data: bytes
    name: str
    encoding: str = DEFAULT_ENCODING

    @classmethod
    def from_bytes(cls, data: bytes, name: str) -> 'Payload':
        return cls(data=data, name=name, encoding=declared_encoding(data) or DEFAULT_ENCODING)


def _is_xml_name(name: str) -> bool:
    return name.lower().endswith(XML_SUFFIX)


def _tar_extract_options():
    # extraction filters are missing from older 3.10/3.11 patch releases
    if hasattr(tarfile, 'data_filter'):
        return {'filter': 'data'}
    return {}


def _extract_zip(data: bytes) -> List[Payload]:
    payloads = []
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            for info in archive.infolist():
                if info.is_dir() or not _is_xml_name(info.filename):
                    continue
                if info.flag_bits & ZIP_ENCRYPTED_FLAG:
                    raise ExtractionError(
                        f"Encrypted zip entry not supported: {info.filename}", ContainerKind.ZIP
                    )
                payloads.append(Payload.from_bytes(archive.read(info), info.filename))
    except (zipfile.BadZipFile, zlib.error, EOFError, NotImplementedError, RuntimeError) as e:
        raise ExtractionError(f"Invalid zip archive: {e}", ContainerKind.ZIP) from e
    return payloads


def _extract_tar(data: bytes, work_dir: Optional[str] = None) -> List[Payload]:
    """Unpack a tar archive on disk and read back its XML members in archive order."""
    payloads = []
    options = _tar_extract_options()
    with tempfile.TemporaryDirectory(prefix='aemet-', dir=work_dir) as tmp_root:
        tar_path = os.path.join(tmp_root, 'data.tar')
        with open(tar_path, 'wb') as f:
            f.write(data)

        out_dir = os.path.join(tmp_root, 'members')
        os.mkdir(out_dir)

        try:
            with tarfile.open(tar_path) as archive:
                for member in archive.getmembers():
                    if not member.isfile() or not _is_xml_name(member.name):
                        continue
                    # read each member right after extracting it, a later
                    # member with the same name overwrites the file
                    archive.extract(member, out_dir, **options)
                    path = os.path.join(out_dir, member.name.lstrip('/'))
                    with open(path, 'rb') as f:
                        payloads.append(Payload.from_bytes(f.read(), member.name))
        except (tarfile.TarError, EOFError, zlib.error) as e:
            raise ExtractionError(f"Invalid tar archive: {e}", ContainerKind.TAR) from e

    return payloads


def _extract_gzip(data: bytes, name: str, work_dir: Optional[str] = None) -> List[Payload]:
    try:
        raw = gzip.decompress(data)
    except (OSError, EOFError, zlib.error) as e:
        raise ExtractionError(f"Invalid gzip stream: {e}", ContainerKind.GZIP) from e

    if has_tar_signature(raw):
        return _extract_tar(raw, work_dir)

    if starts_with_xml_declaration(raw):
        return [Payload.from_bytes(raw, name)]

    logger.debug("gzip content of %s is neither tar nor XML", name or 'resource')
    return []


def _extract_unknown(data: bytes, name: str) -> List[Payload]:
    start = data.find(XML_DECLARATION)
    if start < 0:
        return []
    return [Payload.from_bytes(data[start:], name)]


def extract(
    kind: ContainerKind,
    data: bytes,
    work_dir: Optional[str] = None,
    name: str = ''
) -> List[Payload]:
    """
    Extract candidate XML documents from a classified buffer.

    Args:
        kind: Result of classify()
        data: Raw bytes
        work_dir: Parent directory for temporary tar extraction (system default if None)
        name: Name given to single-document payloads

    Returns:
        List of Payload objects, possibly empty

    Raises:
        ExtractionError: If the container content is corrupt
    """
    if kind is ContainerKind.RAW_XML:
        return [Payload.from_bytes(data, name)]
    if kind is ContainerKind.ZIP:
        return _extract_zip(data)
    if kind is ContainerKind.GZIP:
        return _extract_gzip(data, name, work_dir)
    if kind is ContainerKind.TAR:
        return _extract_tar(data, work_dir)
    return _extract_unknown(data, name)
