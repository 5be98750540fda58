"""
Pattern-based extraction for CAP documents that do not parse as XML.

Each <entry> fragment (or <info> fragment when the document has no entries)
is searched independently; fragments without a zona geocode are dropped.
"""

import html
import re
from typing import List, Optional

from .records import AlertRecord
from .severity import map_severity


_PREFIX = r'(?:[\w.-]+:)?'

_ENTRY_SPLIT = re.compile(rf'<{_PREFIX}entry\b[^>]*>', re.IGNORECASE)
_INFO_SPLIT = re.compile(rf'<{_PREFIX}info\b[^>]*>', re.IGNORECASE)

_ZONE_RE = re.compile(
    rf'<{_PREFIX}geocode>.*?'
    rf'<{_PREFIX}valueName>[^<]*zona[^<]*</{_PREFIX}valueName>.*?'
    rf'<{_PREFIX}value>(.*?)</{_PREFIX}value>',
    re.IGNORECASE | re.DOTALL
)


def _tag_re(name: str):
    return re.compile(rf'<{_PREFIX}{name}>(.*?)</{_PREFIX}{name}>', re.DOTALL)


_SEVERITY_RE = _tag_re('severity')
_EVENT_RE = _tag_re('event')
_ONSET_RE = _tag_re('onset')
_EXPIRES_RE = _tag_re('expires')
_AREA_DESC_RE = _tag_re('areaDesc')


def _match(pattern, fragment: str) -> Optional[str]:
    m = pattern.search(fragment)
    if not m:
        return None
    text = html.unescape(m.group(1)).strip()
    return text or None


def _fragments(text: str) -> List[str]:
    parts = _ENTRY_SPLIT.split(text)
    if len(parts) == 1:
        parts = _INFO_SPLIT.split(text)
    return parts[1:]


def salvage(text: str) -> List[AlertRecord]:
    """Extract what can be recognized from a malformed CAP document."""
    records = []
    for fragment in _fragments(text):
        zone = _match(_ZONE_RE, fragment)
        if not zone:
            continue

        records.append(AlertRecord(
            zone=zone,
            level=map_severity(_match(_SEVERITY_RE, fragment)),
            event=_match(_EVENT_RE, fragment),
            onset=_match(_ONSET_RE, fragment),
            expires=_match(_EXPIRES_RE, fragment),
            area_desc=_match(_AREA_DESC_RE, fragment)
        ))

    return records
