"""
Downloaded resource handling: container detection, extraction and decoding.
"""

from .sniffer import ContainerKind, classify
from .extractor import Payload, extract
from .decoder import decode, decode_payload, declared_encoding

__all__ = [
    'ContainerKind', 'classify',
    'Payload', 'extract',
    'decode', 'decode_payload', 'declared_encoding'
]
