"""
Grouping of normalized alerts for display.

Records are grouped by AEMET area (a prefix of the subzone code), only
alerts in force are counted, and subzones are ordered by their worst level.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from ..cap import AlertRecord, AlertLevel

STATUS_CRITICAL = 'CRÍTICO'
STATUS_MEDIUM = 'MEDIO'
STATUS_NORMAL = 'NORMALIDAD'


def parse_timestamp(text: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp; naive values are taken as UTC."""
    if not text:
        return None
    try:
        value = datetime.fromisoformat(text.strip().replace('Z', '+00:00'))
    except ValueError:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def is_in_force(record: AlertRecord, now: Optional[datetime] = None) -> bool:
    """True if now lies within [onset, expires]; a missing or unreadable bound is open."""
    now = now or datetime.now(timezone.utc)
    onset = parse_timestamp(record.onset)
    expires = parse_timestamp(record.expires)
    if onset and now < onset:
        return False
    if expires and now > expires:
        return False
    return True


def worst_level(records: Iterable[AlertRecord]) -> AlertLevel:
    return min((r.level for r in records), key=lambda l: l.priority, default=AlertLevel.NORMAL)


def overall_status(records: List[AlertRecord]) -> str:
    level = worst_level(records)
    if level is AlertLevel.CRITICAL:
        return STATUS_CRITICAL
    if level is AlertLevel.MEDIUM:
        return STATUS_MEDIUM
    return STATUS_NORMAL


def group_by_subzone(records: List[AlertRecord]) -> List[Dict[str, Any]]:
    """Subzone groups, worst level first, then by subzone code."""
    groups: Dict[str, List[AlertRecord]] = {}
    for record in records:
        groups.setdefault(record.zone, []).append(record)

    keys = sorted(groups, key=lambda k: (worst_level(groups[k]).priority, k))

    result = []
    for key in keys:
        alerts = groups[key]
        desc = alerts[0].area_desc
        result.append({
            'zona': key,
            'titulo': f'{key} · {desc}' if desc else key,
            'nivel': worst_level(alerts).value,
            'avisos': [a.to_dict() for a in alerts]
        })
    return result


def area_summary(
    area: str,
    title: str,
    records: List[AlertRecord],
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """Status card and subzone list for one AEMET area."""
    active = [r for r in records if r.zone.startswith(area) and is_in_force(r, now)]
    return {
        'area': area,
        'titulo': title,
        'estado': overall_status(active),
        'subzonas': len({r.zone for r in active}),
        'avisos': len(active),
        'detalle': group_by_subzone(active)
    }


def build_summary(
    records: List[AlertRecord],
    areas: Iterable[str],
    area_names: Dict[str, str],
    now: Optional[datetime] = None
) -> List[Dict[str, Any]]:
    return [
        area_summary(area, f"Zona {area} - {area_names.get(area, area)}", records, now)
        for area in areas
    ]
