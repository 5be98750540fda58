"""
Tests for the alerts API and the display grouping
"""

from datetime import datetime, timezone

import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from aemet_alerts.archive import AlertArchive, write_outputs
from aemet_alerts.cap import AlertRecord, AlertLevel
from aemet_alerts.config import Settings
from aemet_alerts.web import create_app
from aemet_alerts.web.summary import (
    build_summary, group_by_subzone, is_in_force, overall_status, parse_timestamp,
    STATUS_CRITICAL, STATUS_MEDIUM, STATUS_NORMAL
)

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def record(zone, level=AlertLevel.MEDIUM, event='Lluvias', onset='2024-03-01T00:00:00+01:00',
           expires='2024-03-01T23:59:59+01:00', area_desc=None):
    return AlertRecord(zone=zone, level=level, event=event, onset=onset,
                       expires=expires, area_desc=area_desc)


RECORDS = [
    record('772202', area_desc='Litoral sur de Alicante'),
    record('771204', AlertLevel.CRITICAL, event='Viento', area_desc='Interior de Castellón'),
    record('772202', AlertLevel.CRITICAL, event='Tormentas', area_desc='Litoral sur de Alicante'),
    # expired
    record('773301', AlertLevel.CRITICAL, onset='2024-02-28T00:00:00+01:00',
           expires='2024-02-28T23:59:59+01:00'),
    record('611101', AlertLevel.NORMAL, area_desc='Sierra de Aracena'),
]

AUDIT = [
    {'area': '77', 'meta_endpoint': 'https://example/77', 'datos_url': 'https://example/sh/77',
     'fetched_at': '2024-03-01T11:00:00Z', 'xmls_encontrados': 3},
    {'area': '61', 'meta_endpoint': 'https://example/61', 'datos_url': 'https://example/sh/61',
     'fetched_at': '2024-03-01T11:00:01Z', 'xmls_encontrados': 1},
]


class TestSummary:
    """Tests for in-force filtering and grouping."""

    def test_parse_timestamp(self):
        """Test ISO parsing with offsets, Z suffix and naive values."""
        assert parse_timestamp('2024-03-01T12:00:00Z') == NOW
        assert parse_timestamp('2024-03-01T13:00:00+01:00') == NOW
        assert parse_timestamp('2024-03-01T12:00:00') == NOW
        assert parse_timestamp('mañana') is None
        assert parse_timestamp(None) is None

    def test_is_in_force(self):
        """Test the [onset, expires] window."""
        assert is_in_force(record('772202'), NOW)
        assert not is_in_force(record('772202', expires='2024-03-01T12:59:00+01:00'), NOW)
        assert not is_in_force(record('772202', onset='2024-03-01T14:00:00+01:00'), NOW)
        assert is_in_force(record('772202', onset=None, expires=None), NOW)

    def test_overall_status(self):
        """Test the worst level drives the area status."""
        assert overall_status([]) == STATUS_NORMAL
        assert overall_status([record('7722')]) == STATUS_MEDIUM
        assert overall_status([record('7722'), record('7712', AlertLevel.CRITICAL)]) == STATUS_CRITICAL

    def test_group_order(self):
        """Test subzones sorted by worst level then code."""
        groups = group_by_subzone([
            record('772202'),
            record('771204'),
            record('773301', AlertLevel.CRITICAL),
        ])
        assert [g['zona'] for g in groups] == ['773301', '771204', '772202']
        assert groups[0]['nivel'] == 'CRÍTICA'

    def test_build_summary(self):
        """Test per-area cards with titles, counts and detail."""
        areas = build_summary(RECORDS, ('77', '61'), {'77': 'Comunidad Valenciana', '61': 'Andalucía'}, NOW)

        valencia, andalucia = areas
        assert valencia['titulo'] == 'Zona 77 - Comunidad Valenciana'
        assert valencia['estado'] == STATUS_CRITICAL
        assert valencia['avisos'] == 3
        assert valencia['subzonas'] == 2
        assert [g['zona'] for g in valencia['detalle']] == ['771204', '772202']
        assert valencia['detalle'][1]['titulo'] == '772202 · Litoral sur de Alicante'
        assert len(valencia['detalle'][1]['avisos']) == 2

        assert andalucia['titulo'] == 'Zona 61 - Andalucía'
        assert andalucia['estado'] == STATUS_NORMAL

    def test_area_code_prefix(self):
        """Test that area codes of any length match as subzone prefixes."""
        castellon, alicante = build_summary(RECORDS, ('7712', '772'), {}, NOW)

        assert castellon['titulo'] == 'Zona 7712 - 7712'
        assert castellon['avisos'] == 1
        assert castellon['estado'] == STATUS_CRITICAL
        assert alicante['avisos'] == 2
        assert [g['zona'] for g in alicante['detalle']] == ['772202']


@pytest.fixture
def settings(tmp_path):
    data_dir = str(tmp_path / 'data')
    write_outputs(data_dir, RECORDS, AUDIT)
    return Settings(
        api_key='very-secret',
        endpoint_template='https://opendata.aemet.es/opendata/api/avisos_cap/ultimoelaborado/area/{area}',
        data_dir=data_dir,
        archive_db=None
    )


@pytest.fixture
def client(settings):
    app = create_app(settings)
    app.config['TESTING'] = True
    return app.test_client()


class TestAlertsAPI:
    """Tests for the /api routes."""

    def test_status_hides_key(self, client):
        """Test that the status route reports configuration without the key."""
        response = client.get('/api/status')
        data = response.get_json()

        assert response.status_code == 200
        assert data['api_key_configured'] is True
        assert data['areas'] == ['77', '61']
        assert data['archive_enabled'] is False
        assert 'very-secret' not in response.get_data(as_text=True)

    def test_get_alerts(self, client):
        """Test listing all records of the last run."""
        data = client.get('/api/avisos').get_json()

        assert data['success'] is True
        assert data['count'] == 5
        assert data['avisos'][0] == {
            'zona': '772202',
            'nivel': 'MEDIA',
            'evento': 'Lluvias',
            'desde': '2024-03-01T00:00:00+01:00',
            'hasta': '2024-03-01T23:59:59+01:00',
            'desc': 'Litoral sur de Alicante'
        }

    def test_filter_by_area_and_level(self, client):
        """Test the area and nivel query filters."""
        data = client.get('/api/avisos', query_string={'area': '77', 'nivel': 'CRÍTICA'}).get_json()
        assert [a['zona'] for a in data['avisos']] == ['771204', '772202', '773301']

        data = client.get('/api/avisos?nivel=normal').get_json()
        assert [a['zona'] for a in data['avisos']] == ['611101']

    def test_invalid_level(self, client):
        """Test that an unknown level is a 400."""
        response = client.get('/api/avisos?nivel=ROJO')
        assert response.status_code == 400
        assert response.get_json()['success'] is False

    def test_summary(self, client):
        """Test the per-area summary route."""
        data = client.get('/api/avisos/resumen').get_json()

        assert data['success'] is True
        assert [a['area'] for a in data['areas']] == ['77', '61']

    def test_meta(self, client):
        """Test the audit trail route."""
        data = client.get('/api/meta').get_json()
        assert data['audit'] == AUDIT

    def test_empty_data_dir(self, tmp_path):
        """Test that no output yet means empty lists."""
        app = create_app(Settings(data_dir=str(tmp_path / 'nothing'), archive_db=None))
        client = app.test_client()

        assert client.get('/api/avisos').get_json()['count'] == 0
        assert client.get('/api/meta').get_json()['audit'] == []

    def test_archive_disabled(self, client):
        """Test that archive routes refuse when no database is configured."""
        assert client.get('/api/archive/records').status_code == 400
        assert client.get('/api/archive/stats').status_code == 400
        assert client.get('/api/archive/runs/1').status_code == 400


class TestArchiveAPI:
    """Tests for the archive routes."""

    @pytest.fixture
    def client(self, tmp_path):
        db_path = str(tmp_path / 'archive.db')
        archive = AlertArchive(db_path)
        archive.add_run(RECORDS[:2], AUDIT)
        archive.add_run(RECORDS, AUDIT)

        app = create_app(Settings(data_dir=str(tmp_path / 'data'), archive_db=db_path))
        return app.test_client()

    def test_search(self, client):
        """Test filters on archived records."""
        data = client.get('/api/archive/records?zone=7712').get_json()
        assert data['count'] == 2

        data = client.get('/api/archive/records', query_string={'run': 2, 'nivel': 'CRÍTICA'}).get_json()
        assert [a['zona'] for a in data['avisos']] == ['771204', '772202', '773301']

        data = client.get('/api/archive/records?event=viento&limit=1').get_json()
        assert data['count'] == 1

    def test_bad_query(self, client):
        """Test that malformed numbers are a 400."""
        assert client.get('/api/archive/records?limit=many').status_code == 400

    def test_get_run(self, client):
        """Test fetching one run and a missing one."""
        data = client.get('/api/archive/runs/1').get_json()
        assert data['run']['record_count'] == 2
        assert data['run']['audit'][1]['area'] == '61'

        assert client.get('/api/archive/runs/99').status_code == 404

    def test_stats(self, client):
        """Test archive statistics."""
        stats = client.get('/api/archive/stats').get_json()['stats']

        assert stats['run_count'] == 2
        assert stats['record_count'] == 7
        assert stats['level_counts']['CRÍTICA'] == 4
