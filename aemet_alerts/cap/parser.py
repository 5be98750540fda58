"""
CAP XML normalizer

Reads AEMET CAP documents in either of the two shapes seen upstream:

    feed/entry/info          Atom feed with CAP info blocks per entry
                             (info may also sit under entry/content or
                             entry/content/alert)
    alert/info               one CAP alert document per file

Tag names are compared by local name, so cap:severity, a namespaced
{urn:oasis:names:tc:emergency:cap:1.2}severity and a bare severity are the
same field.
Reference: http://docs.oasis-open.org/emergency/cap/v1.2/CAP-v1.2.html
"""

import logging
import re
import xml.etree.ElementTree as ET
from typing import List, Optional

from .records import AlertRecord, CAPParameter
from .severity import map_severity
from .dedupe import dedupe
from .salvage import salvage

logger = logging.getLogger(__name__)

# geocode valueName that carries the AEMET subzone code
ZONE_GEOCODE_MARKER = 'zona'

_XML_DECL_RE = re.compile(r'^\s*<\?xml[^>]*\?>')


def _local_name(tag) -> str:
    """Strip '{namespace}' or 'prefix:' from a tag."""
    if not isinstance(tag, str):
        # comments and processing instructions
        return ''
    if '}' in tag:
        tag = tag.split('}', 1)[1]
    if ':' in tag:
        tag = tag.split(':', 1)[1]
    return tag


def children(node: ET.Element, name: str) -> List[ET.Element]:
    """All direct children with the given local name."""
    return [child for child in node if _local_name(child.tag) == name]


def find(node: ET.Element, name: str) -> Optional[ET.Element]:
    """First direct child with the given local name."""
    for child in node:
        if _local_name(child.tag) == name:
            return child
    return None


def _text(elem: Optional[ET.Element]) -> Optional[str]:
    """Element text, or None if the element is missing or blank."""
    if elem is None:
        return None
    text = ''.join(elem.itertext()).strip()
    return text or None


def field(node: ET.Element, name: str) -> Optional[str]:
    """Text of the first child with the given local name."""
    return _text(find(node, name))


def _parse_parameter(param_elem: ET.Element) -> CAPParameter:
    values = []
    for value_elem in children(param_elem, 'value'):
        value = _text(value_elem)
        if value is not None:
            values.append(value)
    return CAPParameter(name=field(param_elem, 'valueName'), values=tuple(values))


def _zone_code(area_elem: ET.Element) -> Optional[str]:
    """Value of the first geocode whose valueName mentions 'zona'."""
    for geocode in children(area_elem, 'geocode'):
        name = field(geocode, 'valueName') or ''
        if ZONE_GEOCODE_MARKER in name.lower():
            return field(geocode, 'value')
    return None


def _parse_info(info_elem: ET.Element) -> List[AlertRecord]:
    """Expand one info block into one record per area with a zone code."""
    level = map_severity(field(info_elem, 'severity'))
    parameters = tuple(_parse_parameter(p) for p in children(info_elem, 'parameter'))

    records = []
    for area_elem in children(info_elem, 'area'):
        zone = _zone_code(area_elem)
        if not zone:
            continue

        records.append(AlertRecord(
            zone=zone,
            level=level,
            event=field(info_elem, 'event'),
            onset=field(info_elem, 'onset'),
            expires=field(info_elem, 'expires'),
            area_desc=field(area_elem, 'areaDesc'),
            probability=field(info_elem, 'probability'),
            value=parameters[0].first_value if parameters else None,
            comment=field(info_elem, 'description'),
            parameters=parameters or None
        ))

    return records


def _feed_infos(feed: ET.Element) -> List[ET.Element]:
    infos = []
    for entry in children(feed, 'entry'):
        infos.extend(children(entry, 'info'))
        for content in children(entry, 'content'):
            infos.extend(children(content, 'info'))
            for alert in children(content, 'alert'):
                infos.extend(children(alert, 'info'))
    return infos


def parse_structured(text: str) -> List[AlertRecord]:
    """
    Parse a CAP document with ElementTree.

    Raises:
        ET.ParseError: If the text is not well-formed XML
    """
    # the text is already decoded, drop the prolog so its encoding is not reapplied
    body = _XML_DECL_RE.sub('', text.lstrip('\ufeff'), count=1)
    root = ET.fromstring(body)

    tag = _local_name(root.tag)
    if tag == 'feed':
        infos = _feed_infos(root)
    elif tag == 'alert':
        infos = children(root, 'info')
    else:
        logger.debug("Unrecognized CAP root element '%s'", tag)
        infos = []

    records = []
    for info_elem in infos:
        records.extend(_parse_info(info_elem))
    return records


def normalize(text: str) -> List[AlertRecord]:
    """
    Normalize one decoded CAP document into deduplicated alert records.

    Falls back to pattern salvage when structural parsing yields nothing.
    Never raises for malformed CAP content.
    """
    try:
        records = parse_structured(text)
    except (ET.ParseError, ValueError) as e:
        logger.debug("Structural CAP parse failed: %s", e)
        records = []

    if not records:
        records = salvage(text)
        if records:
            logger.warning("CAP document salvaged by pattern extraction (%d records)", len(records))

    return dedupe(records)
