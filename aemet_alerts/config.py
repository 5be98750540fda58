"""
Runtime configuration from environment variables.

A .env.local (then .env) file in the working directory is loaded first when
present; variables already set in the environment win.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from dotenv import load_dotenv

from .errors import ConfigError

ENV_FILES = ('.env.local', '.env')

DEFAULT_AREAS = ('77', '61')
AREA_PLACEHOLDER = '{area}'

# example, confirm against the AEMET OpenData documentation:
#   https://opendata.aemet.es/opendata/api/avisos_cap/ultimoelaborado/area/{area}


def load_env_files(paths=ENV_FILES) -> List[str]:
    """Load dotenv files that exist. Returns the ones loaded."""
    loaded = []
    for path in paths:
        if os.path.isfile(path):
            load_dotenv(path, override=False)
            loaded.append(path)
    return loaded


def _split_areas(value: Optional[str]) -> Tuple[str, ...]:
    if not value:
        return DEFAULT_AREAS
    areas = tuple(a.strip() for a in value.split(',') if a.strip())
    return areas or DEFAULT_AREAS


@dataclass(frozen=True)
class Settings:
    """Settings for fetching, scheduling and output."""
    api_key: Optional[str] = None
    endpoint_template: Optional[str] = None
    areas: Tuple[str, ...] = DEFAULT_AREAS
    data_dir: str = os.path.join('public', 'data')
    archive_db: Optional[str] = 'aemet_alerts.db'
    interval_seconds: int = 600
    meta_timeout: float = 12.0
    data_timeout: float = 20.0
    retry_attempts: int = 2
    retry_delay: float = 0.6
    log_level: str = 'INFO'
    area_names: Dict[str, str] = field(default_factory=lambda: {
        '77': 'Comunidad Valenciana',
        '61': 'Andalucía',
    })

    @classmethod
    def from_env(cls, environ=None) -> 'Settings':
        """Build settings from an environment mapping (os.environ by default)."""
        env = os.environ if environ is None else environ
        try:
            return cls(
                api_key=env.get('AEMET_API_KEY') or None,
                endpoint_template=env.get('AEMET_CAP_ENDPOINT_TEMPLATE') or None,
                areas=_split_areas(env.get('AEMET_AREAS')),
                data_dir=env.get('AEMET_DATA_DIR') or os.path.join('public', 'data'),
                # an explicitly empty value disables the archive
                archive_db=env.get('AEMET_ARCHIVE_DB', 'aemet_alerts.db') or None,
                interval_seconds=int(env.get('AEMET_INTERVAL_SECONDS', 600)),
                meta_timeout=float(env.get('AEMET_META_TIMEOUT', 12)),
                data_timeout=float(env.get('AEMET_DATA_TIMEOUT', 20)),
                retry_attempts=int(env.get('AEMET_RETRY_ATTEMPTS', 2)),
                log_level=env.get('AEMET_LOG_LEVEL', 'INFO').upper()
            )
        except ValueError as e:
            raise ConfigError(f"Invalid numeric setting: {e}") from e

    def validate(self):
        """
        Check the settings needed to fetch from AEMET.

        Raises:
            ConfigError: If the API key is missing or the endpoint template
                has no {area} placeholder
        """
        if not self.api_key:
            raise ConfigError("AEMET_API_KEY is not set")
        if not self.endpoint_template or AREA_PLACEHOLDER not in self.endpoint_template:
            raise ConfigError(
                "AEMET_CAP_ENDPOINT_TEMPLATE is missing or has no {area} placeholder"
            )
        if self.retry_attempts < 1:
            raise ConfigError("AEMET_RETRY_ATTEMPTS must be at least 1")

    def endpoint_for(self, area: str) -> str:
        return self.endpoint_template.replace(AREA_PLACEHOLDER, area)

    def area_name(self, area: str) -> str:
        return self.area_names.get(area, f'Zona {area}')
