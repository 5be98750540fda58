"""
JSON output files read by the presentation layer.
"""

import json
import os
from typing import Any, Dict, List

from ..cap import AlertRecord, records_to_dicts

RECORDS_FILE = 'aemet_avisos.json'
AUDIT_FILE = 'aemet_meta.json'


def save_json(path: str, data: Any):
    """Write JSON through a temporary file so readers never see a partial file."""
    tmp = path + '.tmp'
    with open(tmp, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.flush()
        os.fsync(f.fileno())
    os.replace(tmp, path)


def load_json(path: str, default: Any) -> Any:
    if not os.path.exists(path):
        return default
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def write_outputs(
    data_dir: str,
    records: List[AlertRecord],
    audit: List[Dict[str, Any]]
) -> Dict[str, str]:
    """
    Write the record list and the fetch audit trail.

    Returns:
        dict with the 'records' and 'audit' file paths
    """
    os.makedirs(data_dir, exist_ok=True)
    records_path = os.path.join(data_dir, RECORDS_FILE)
    audit_path = os.path.join(data_dir, AUDIT_FILE)

    save_json(records_path, records_to_dicts(records))
    save_json(audit_path, audit)

    return {'records': records_path, 'audit': audit_path}


def load_records(data_dir: str) -> List[AlertRecord]:
    """Records from the last written output, empty if none yet."""
    data = load_json(os.path.join(data_dir, RECORDS_FILE), [])
    if not isinstance(data, list):
        return []
    return [AlertRecord.from_dict(item) for item in data]


def load_audit(data_dir: str) -> List[Dict[str, Any]]:
    data = load_json(os.path.join(data_dir, AUDIT_FILE), [])
    return data if isinstance(data, list) else []
