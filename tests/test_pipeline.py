"""
Tests for the resource pipeline, the run-once job and the scheduler
"""

import io
import json
import tarfile
import threading
import zipfile
from datetime import timedelta

import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from aemet_alerts import process_resource, AlertLevel, ExtractionError, FetchError, ConfigError
from aemet_alerts.archive import AlertArchive, AlertSink
from aemet_alerts.config import Settings
from aemet_alerts.cron import AlertScheduler, run_once
from aemet_alerts.resource import ContainerKind


def cap_alert(zone, severity='Moderate', event='Lluvias', area_desc='Litoral', encoding='UTF-8'):
    return (
        f'<?xml version="1.0" encoding="{encoding}"?>\n'
        '<alert xmlns="urn:oasis:names:tc:emergency:cap:1.2">'
        f'<info><event>{event}</event><severity>{severity}</severity>'
        '<onset>2024-03-01T00:00:00+01:00</onset><expires>2024-03-01T23:59:59+01:00</expires>'
        f'<area><areaDesc>{area_desc}</areaDesc>'
        f'<geocode><valueName>AEMET-Meteoalerta zona</valueName><value>{zone}</value></geocode>'
        '</area></info></alert>'
    ).encode('iso-8859-15' if encoding.upper().startswith('ISO') else 'utf-8')


def make_tar_gz(files):
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode='w:gz') as archive:
        for name, data in files:
            info = tarfile.TarInfo(name)
            info.size = len(data)
            archive.addfile(info, io.BytesIO(data))
    return buf.getvalue()


def make_zip(files):
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, 'w') as archive:
        for name, data in files:
            archive.writestr(name, data)
    return buf.getvalue()


class TestProcessResource:
    """Tests for bytes -> records."""

    def test_tar_gz_aggregates_and_dedupes(self):
        """Test that records from all documents are merged and deduplicated once."""
        data = make_tar_gz([
            ('Z_CAP_C_LEMM_1.xml', cap_alert('772202')),
            ('Z_CAP_C_LEMM_2.xml', cap_alert('771204', severity='Extreme', event='Viento')),
            ('Z_CAP_C_LEMM_3.xml', cap_alert('772202')),
        ])
        result = process_resource('https://opendata.aemet.es/opendata/sh/abc', data)

        assert result.kind == ContainerKind.GZIP
        assert result.payload_count == 3
        assert [r.zone for r in result.records] == ['772202', '771204']
        assert result.records[1].level == AlertLevel.CRITICAL

    def test_latin_payload_in_zip(self):
        """Test that ISO-8859-15 documents keep their accents."""
        data = make_zip([
            ('avisos/a.xml', cap_alert('771102', area_desc='Litoral norte de Castellón', encoding='ISO-8859-15')),
        ])
        result = process_resource('avisos.zip', data)

        assert result.records[0].area_desc == 'Litoral norte de Castellón'

    def test_raw_xml(self):
        """Test a plain XML resource."""
        result = process_resource('x', cap_alert('611101'))
        assert result.kind == ContainerKind.RAW_XML
        assert [r.zone for r in result.records] == ['611101']

    def test_no_documents(self):
        """Test that unknown content is an empty result."""
        result = process_resource('x', b'{"estado": 404}')

        assert result.kind == ContainerKind.UNKNOWN
        assert result.payload_count == 0
        assert result.records == []

    def test_corrupt_archive(self):
        """Test that a corrupt container surfaces as ExtractionError."""
        with pytest.raises(ExtractionError):
            process_resource('avisos.tar.gz', b'\x1f\x8b\x08\x00garbage')


class FakeClient:
    """Stands in for AEMETFeedClient."""

    def __init__(self, resources, failing=()):
        self.resources = resources
        self.failing = failing
        self.requested = []

    def get_data_url(self, endpoint):
        self.requested.append(endpoint)
        area = endpoint.rsplit('/', 1)[1]
        if area in self.failing:
            raise FetchError(f"HTTP 500 fetching {endpoint}")
        return f'https://opendata.aemet.es/opendata/sh/{area}'

    def fetch_resource(self, url):
        return self.resources[url.rsplit('/', 1)[1]]


@pytest.fixture
def settings(tmp_path):
    return Settings(
        api_key='test-key',
        endpoint_template='https://opendata.aemet.es/opendata/api/avisos_cap/ultimoelaborado/area/{area}',
        areas=('77', '61'),
        data_dir=str(tmp_path / 'data'),
        archive_db=str(tmp_path / 'archive.db')
    )


class TestRunOnce:
    """Tests for the run-once job."""

    def test_all_areas(self, settings):
        """Test that every area is fetched, merged and written."""
        client = FakeClient({
            '77': make_tar_gz([('a.xml', cap_alert('771204')), ('b.xml', cap_alert('772202'))]),
            '61': cap_alert('611101', severity='Severe'),
        })
        report = run_once(settings, client=client)

        assert client.requested == [
            'https://opendata.aemet.es/opendata/api/avisos_cap/ultimoelaborado/area/77',
            'https://opendata.aemet.es/opendata/api/avisos_cap/ultimoelaborado/area/61',
        ]
        assert [r.zone for r in report.records] == ['771204', '772202', '611101']
        assert report.failed_areas == []
        assert [a.xmls_encontrados for a in report.audit] == [2, 1]

        with open(report.outputs['records'], encoding='utf-8') as f:
            written = json.load(f)
        assert [item['zona'] for item in written] == ['771204', '772202', '611101']
        assert written[2]['nivel'] == 'CRÍTICA'

    def test_failed_area_is_audited(self, settings):
        """Test that one failing area does not stop the others."""
        client = FakeClient({'77': cap_alert('771204')}, failing=('61',))
        report = run_once(settings, client=client)

        assert report.failed_areas == ['61']
        assert [r.zone for r in report.records] == ['771204']

        with open(report.outputs['audit'], encoding='utf-8') as f:
            audit = json.load(f)
        assert audit[1]['area'] == '61'
        assert audit[1]['datos_url'] == ''
        assert audit[1]['xmls_encontrados'] == 0
        assert 'HTTP 500' in audit[1]['error']
        assert audit[0]['datos_url'] == 'https://opendata.aemet.es/opendata/sh/77'

    def test_corrupt_area_is_audited(self, settings):
        """Test that an extraction failure is contained to its area."""
        client = FakeClient({'77': b'\x1f\x8b\x08\x00broken', '61': cap_alert('611101')})
        report = run_once(settings, client=client)

        assert report.failed_areas == ['77']
        assert [r.zone for r in report.records] == ['611101']

    def test_run_archived(self, settings):
        """Test that the run and its records land in the archive."""
        client = FakeClient({'77': cap_alert('771204'), '61': cap_alert('611101')})
        report = run_once(settings, client=client)

        archive = AlertArchive(settings.archive_db)
        run = archive.get_run(report.outputs['run_id'])
        assert run.record_count == 2
        assert [a['area'] for a in run.audit] == ['77', '61']
        assert archive.latest_records() == report.records

    def test_run_times_are_utc(self, settings):
        """Test that run times share the UTC clock of the audit entries."""
        client = FakeClient({'77': cap_alert('771204'), '61': cap_alert('611101')})
        report = run_once(settings, client=client)

        assert report.started_at.utcoffset() == timedelta(0)
        assert report.finished_at.utcoffset() == timedelta(0)
        assert report.audit[0].fetched_at.endswith('Z')

        run = AlertArchive(settings.archive_db).get_run(report.outputs['run_id'])
        assert run.started_at == report.started_at
        assert run.started_at.utcoffset() == timedelta(0)

    def test_custom_sink(self, settings, tmp_path):
        """Test that a sink without archive only writes files."""
        client = FakeClient({'77': cap_alert('771204'), '61': cap_alert('611101')})
        sink = AlertSink(str(tmp_path / 'out'))
        report = run_once(settings, client=client, sink=sink)

        assert 'run_id' not in report.outputs
        assert os.path.exists(os.path.join(str(tmp_path / 'out'), 'aemet_avisos.json'))

    def test_missing_configuration(self, tmp_path):
        """Test that nothing runs without an API key and endpoint template."""
        with pytest.raises(ConfigError):
            run_once(Settings(data_dir=str(tmp_path)), client=FakeClient({}))


class TestAlertScheduler:
    """Tests for periodic execution."""

    def test_trigger_runs_job(self):
        """Test a manual trigger."""
        calls = []
        scheduler = AlertScheduler(lambda: calls.append(1) or 'ok', interval=60)

        assert scheduler.trigger() is True
        assert calls == [1]
        assert scheduler.last_result == 'ok'
        assert scheduler.run_count == 1

    def test_no_overlap(self):
        """Test that a trigger during a run is skipped."""
        nested = []

        def job():
            nested.append(scheduler.trigger())

        scheduler = AlertScheduler(job, interval=60)
        scheduler.trigger()

        assert nested == [False]
        assert scheduler.run_count == 1
        assert not scheduler.is_running

    def test_failing_job_recorded(self):
        """Test that a job error is kept and does not propagate."""
        def job():
            raise FetchError("timeout")

        scheduler = AlertScheduler(job, interval=60)

        assert scheduler.trigger() is True
        assert scheduler.last_error == 'timeout'
        assert not scheduler.is_running

    def test_start_runs_immediately(self):
        """Test that the background schedule runs once at start and stops cleanly."""
        ran = threading.Event()
        scheduler = AlertScheduler(ran.set, interval=60)

        assert scheduler.start() is True
        assert ran.wait(5)
        scheduler.stop(timeout=5)

        assert scheduler.run_count >= 1
        assert scheduler.wait(0) is True
