"""
Normalized alert records.

Field names in to_dict() are the persisted JSON keys read by the
presentation layer and must stay stable.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
from enum import Enum


class AlertLevel(Enum):
    """Three-level severity scale used for display and grouping."""
    NORMAL = 'NORMALIDAD'
    MEDIUM = 'MEDIA'
    CRITICAL = 'CRÍTICA'

    @property
    def priority(self) -> int:
        """Sort priority, 0 is the most severe."""
        return _PRIORITY[self]

    @property
    def cap_token(self) -> str:
        """A CAP severity token that maps back to this level."""
        return _CAP_TOKENS[self]


_PRIORITY = {
    AlertLevel.CRITICAL: 0,
    AlertLevel.MEDIUM: 1,
    AlertLevel.NORMAL: 2,
}

_CAP_TOKENS = {
    AlertLevel.CRITICAL: 'Severe',
    AlertLevel.MEDIUM: 'Moderate',
    AlertLevel.NORMAL: 'Minor',
}


@dataclass(frozen=True)
class CAPParameter:
    """
    A CAP <parameter> block.

    A parameter may repeat <value>; all values are kept in document order.
    """
    name: Optional[str] = None
    values: Tuple[str, ...] = ()

    @property
    def first_value(self) -> Optional[str]:
        return self.values[0] if self.values else None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        if self.name is not None:
            result['valueName'] = self.name
        if len(self.values) == 1:
            result['value'] = self.values[0]
        elif self.values:
            result['value'] = list(self.values)
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CAPParameter':
        value = data.get('value')
        if value is None:
            values: Tuple[str, ...] = ()
        elif isinstance(value, list):
            values = tuple(str(v) for v in value)
        else:
            values = (str(value),)
        return cls(name=data.get('valueName'), values=values)


@dataclass(frozen=True)
class AlertRecord:
    """
    One alert for one AEMET subzone.

    Optional fields are None when the source did not report them; they are
    never filled with placeholders.
    """
    zone: str
    level: AlertLevel
    event: Optional[str] = None
    onset: Optional[str] = None
    expires: Optional[str] = None
    area_desc: Optional[str] = None
    probability: Optional[str] = None
    value: Optional[str] = None
    comment: Optional[str] = None
    parameters: Optional[Tuple[CAPParameter, ...]] = None

    def __post_init__(self):
        if not self.zone or not self.zone.strip():
            raise ValueError("AlertRecord requires a non-empty zone")

    @property
    def area(self) -> str:
        """AEMET area code (first two digits of the subzone)."""
        return self.zone[:2]

    @property
    def dedup_key(self) -> str:
        return '|'.join([
            self.zone,
            self.event or '',
            self.onset or '',
            self.expires or '',
            self.level.value,
        ])

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization, dropping absent fields."""
        result: Dict[str, Any] = {
            'zona': self.zone,
            'nivel': self.level.value,
        }
        optional = [
            ('evento', self.event),
            ('desde', self.onset),
            ('hasta', self.expires),
            ('desc', self.area_desc),
            ('probabilidad', self.probability),
            ('valor', self.value),
            ('comentario', self.comment),
        ]
        for key, val in optional:
            if val is not None:
                result[key] = val
        if self.parameters:
            result['parametros'] = [p.to_dict() for p in self.parameters]
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AlertRecord':
        """Create from a persisted dictionary."""
        params = data.get('parametros')
        return cls(
            zone=data['zona'],
            level=AlertLevel(data['nivel']),
            event=data.get('evento'),
            onset=data.get('desde'),
            expires=data.get('hasta'),
            area_desc=data.get('desc'),
            probability=data.get('probabilidad'),
            value=data.get('valor'),
            comment=data.get('comentario'),
            parameters=tuple(CAPParameter.from_dict(p) for p in params) if params else None
        )


def records_to_dicts(records: List[AlertRecord]) -> List[Dict[str, Any]]:
    return [r.to_dict() for r in records]
