"""
CAP severity -> three-level scale.
"""

from typing import Optional

from .records import AlertLevel


# CAP v1.2 severity vocabulary
CAP_SEVERITY_LEVELS = {
    'EXTREME': AlertLevel.CRITICAL,
    'SEVERE': AlertLevel.CRITICAL,
    'MODERATE': AlertLevel.MEDIUM,
    'MINOR': AlertLevel.NORMAL,
    'UNKNOWN': AlertLevel.NORMAL,
}

# localized (Spanish) wording, matched as substrings
LOCALIZED_CRITICAL = ('EXTREMO', 'EXTREMA', 'SEVERO', 'SEVERA')
LOCALIZED_MEDIUM = ('MODERADO', 'MODERADA')


def map_severity(raw: Optional[str]) -> AlertLevel:
    """
    Map a vendor severity token to an AlertLevel.

    Unrecognized or missing input maps to NORMAL; a higher level is only
    returned when the token says so.
    """
    token = (raw or '').strip().upper()

    level = CAP_SEVERITY_LEVELS.get(token)
    if level is not None:
        return level

    if any(word in token for word in LOCALIZED_CRITICAL):
        return AlertLevel.CRITICAL
    if any(word in token for word in LOCALIZED_MEDIUM):
        return AlertLevel.MEDIUM

    return AlertLevel.NORMAL
