"""
SQLite archive of fetch runs and their alert records.
"""

import sqlite3
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Dict, Any

from ..cap import AlertRecord, AlertLevel, CAPParameter


@dataclass
class ArchivedRun:
    """Represents one archived fetch run."""
    id: int
    started_at: datetime
    finished_at: datetime
    record_count: int
    audit: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            'id': self.id,
            'started_at': self.started_at.isoformat(),
            'finished_at': self.finished_at.isoformat(),
            'record_count': self.record_count,
            'audit': self.audit
        }


class AlertArchive:
    """
    SQLite-based archive with search and filter capabilities.

    Every run is stored with its audit trail; records keep the run they
    came from so the latest snapshot can be rebuilt.
    """

    def __init__(self, db_path: str = 'aemet_alerts.db'):
        """Initialize archive with database path."""
        self.db_path = db_path
        self._init_db()

    def _init_db(self):
        """Create database tables if they don't exist."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute('''
                CREATE TABLE IF NOT EXISTS runs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    started_at TEXT NOT NULL,
                    finished_at TEXT NOT NULL,
                    record_count INTEGER NOT NULL,
                    audit TEXT NOT NULL
                )
            ''')
            conn.execute('''
                CREATE TABLE IF NOT EXISTS records (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    run_id INTEGER NOT NULL REFERENCES runs(id),
                    zona TEXT NOT NULL,
                    nivel TEXT NOT NULL,
                    evento TEXT,
                    desde TEXT,
                    hasta TEXT,
                    descripcion TEXT,
                    probabilidad TEXT,
                    valor TEXT,
                    comentario TEXT,
                    parametros TEXT,
                    dedup_key TEXT NOT NULL
                )
            ''')

            # create indices for common queries
            conn.execute('CREATE INDEX IF NOT EXISTS idx_records_run ON records(run_id)')
            conn.execute('CREATE INDEX IF NOT EXISTS idx_records_zona ON records(zona)')
            conn.execute('CREATE INDEX IF NOT EXISTS idx_records_nivel ON records(nivel)')

            conn.commit()

    def add_run(
        self,
        records: List[AlertRecord],
        audit: List[Dict[str, Any]],
        started_at: Optional[datetime] = None,
        finished_at: Optional[datetime] = None
    ) -> int:
        """
        Archive a run and its records.

        Returns:
            run ID
        """
        finished_at = finished_at or datetime.now(timezone.utc)
        started_at = started_at or finished_at

        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.cursor()

            cursor.execute('''
                INSERT INTO runs (started_at, finished_at, record_count, audit)
                VALUES (?, ?, ?, ?)
            ''', (
                started_at.isoformat(),
                finished_at.isoformat(),
                len(records),
                json.dumps(audit, ensure_ascii=False)
            ))
            run_id = cursor.lastrowid

            cursor.executemany('''
                INSERT INTO records (
                    run_id, zona, nivel, evento, desde, hasta,
                    descripcion, probabilidad, valor, comentario,
                    parametros, dedup_key
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ''', [
                (
                    run_id,
                    r.zone,
                    r.level.value,
                    r.event,
                    r.onset,
                    r.expires,
                    r.area_desc,
                    r.probability,
                    r.value,
                    r.comment,
                    json.dumps([p.to_dict() for p in r.parameters], ensure_ascii=False)
                    if r.parameters else None,
                    r.dedup_key
                )
                for r in records
            ])

            conn.commit()
            return run_id

    def get_run(self, run_id: int) -> Optional[ArchivedRun]:
        """Get run by ID."""
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            cursor = conn.cursor()

            cursor.execute('SELECT * FROM runs WHERE id = ?', (run_id,))
            row = cursor.fetchone()

            if not row:
                return None

            return self._row_to_run(row)

    def latest_run_id(self) -> Optional[int]:
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute('SELECT MAX(id) FROM runs')
            return cursor.fetchone()[0]

    def latest_records(self) -> List[AlertRecord]:
        """Records of the most recent run."""
        run_id = self.latest_run_id()
        if run_id is None:
            return []
        return self.search_records(run_id=run_id, limit=-1)

    def search_records(
        self,
        zone_prefix: Optional[str] = None,
        level: Optional[AlertLevel] = None,
        event: Optional[str] = None,
        run_id: Optional[int] = None,
        limit: int = 100,
        offset: int = 0
    ) -> List[AlertRecord]:
        """
        Search archived records with filters.

        Args:
            zone_prefix: Filter by zone code prefix (e.g. '77' for a whole area)
            level: Filter by alert level
            event: Filter by event name (substring, case-insensitive)
            run_id: Restrict to one run
            limit: Max results (-1 for no limit)
            offset: Result offset

        Returns:
            List of matching records, newest run first
        """
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            cursor = conn.cursor()

            query = 'SELECT * FROM records WHERE 1=1'
            params = []

            if zone_prefix:
                query += ' AND zona LIKE ?'
                params.append(f'{zone_prefix}%')

            if level is not None:
                query += ' AND nivel = ?'
                params.append(level.value)

            if event:
                query += ' AND evento LIKE ?'
                params.append(f'%{event}%')

            if run_id is not None:
                query += ' AND run_id = ?'
                params.append(run_id)

            query += ' ORDER BY run_id DESC, id ASC LIMIT ? OFFSET ?'
            params.extend([limit, offset])

            cursor.execute(query, params)
            rows = cursor.fetchall()

            return [self._row_to_record(row) for row in rows]

    def get_stats(self) -> Dict[str, Any]:
        """Get archive statistics."""
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.cursor()

            cursor.execute('SELECT COUNT(*) FROM runs')
            run_count = cursor.fetchone()[0]

            cursor.execute('SELECT COUNT(*) FROM records')
            record_count = cursor.fetchone()[0]

            # counts by level
            cursor.execute('''
                SELECT nivel, COUNT(*) as count
                FROM records
                GROUP BY nivel
            ''')
            level_counts = {row[0]: row[1] for row in cursor.fetchall()}

            # counts by event
            cursor.execute('''
                SELECT evento, COUNT(*) as count
                FROM records
                WHERE evento IS NOT NULL
                GROUP BY evento
                ORDER BY count DESC
                LIMIT 10
            ''')
            event_counts = {row[0]: row[1] for row in cursor.fetchall()}

            cursor.execute('SELECT MIN(started_at), MAX(finished_at) FROM runs')
            min_date, max_date = cursor.fetchone()

            return {
                'run_count': run_count,
                'record_count': record_count,
                'level_counts': level_counts,
                'event_counts': event_counts,
                'date_range': {
                    'earliest': min_date,
                    'latest': max_date
                }
            }

    def delete_run(self, run_id: int) -> bool:
        """Delete a run and its records. Returns True if deleted."""
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute('DELETE FROM records WHERE run_id = ?', (run_id,))
            cursor.execute('DELETE FROM runs WHERE id = ?', (run_id,))
            conn.commit()
            return cursor.rowcount > 0

    def _row_to_run(self, row: sqlite3.Row) -> ArchivedRun:
        """Convert database row to ArchivedRun."""
        return ArchivedRun(
            id=row['id'],
            started_at=datetime.fromisoformat(row['started_at']),
            finished_at=datetime.fromisoformat(row['finished_at']),
            record_count=row['record_count'],
            audit=json.loads(row['audit'])
        )

    def _row_to_record(self, row: sqlite3.Row) -> AlertRecord:
        """Convert database row to AlertRecord."""
        params = json.loads(row['parametros']) if row['parametros'] else None
        return AlertRecord(
            zone=row['zona'],
            level=AlertLevel(row['nivel']),
            event=row['evento'],
            onset=row['desde'],
            expires=row['hasta'],
            area_desc=row['descripcion'],
            probability=row['probabilidad'],
            value=row['valor'],
            comment=row['comentario'],
            parameters=tuple(CAPParameter.from_dict(p) for p in params) if params else None
        )
