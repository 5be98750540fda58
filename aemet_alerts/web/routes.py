"""
Flask routes for the AEMET alerts API
"""

from flask import Blueprint, current_app, request, jsonify

from ..archive import AlertArchive, load_records, load_audit
from ..cap import AlertLevel
from .summary import build_summary

api_bp = Blueprint('api', __name__)


def _settings():
    return current_app.config['AEMET_SETTINGS']


def _archive():
    db_path = _settings().archive_db
    return AlertArchive(db_path) if db_path else None


def _parse_level(value):
    """AlertLevel from a query value ('CRÍTICA', 'critical', ...)."""
    if not value:
        return None
    try:
        return AlertLevel(value.upper())
    except ValueError:
        return AlertLevel[value.upper()]


@api_bp.route('/status', methods=['GET'])
def status():
    """Configuration overview (never exposes the API key)."""
    settings = _settings()
    return jsonify({
        'api_key_configured': bool(settings.api_key),
        'endpoint_configured': bool(settings.endpoint_template),
        'areas': list(settings.areas),
        'interval_seconds': settings.interval_seconds,
        'archive_enabled': bool(settings.archive_db)
    })


@api_bp.route('/avisos', methods=['GET'])
def get_alerts():
    """
    Get the alerts from the last run.

    Query params:
        area: str - Area code prefix (e.g., 77)
        nivel: str - Level filter (NORMALIDAD, MEDIA, CRÍTICA)

    Returns:
        List of alert records
    """
    try:
        level = _parse_level(request.args.get('nivel'))
        area = request.args.get('area')

        records = load_records(_settings().data_dir)
        if area:
            records = [r for r in records if r.zone.startswith(area)]
        if level:
            records = [r for r in records if r.level is level]

        return jsonify({
            'success': True,
            'count': len(records),
            'avisos': [r.to_dict() for r in records]
        })

    except KeyError:
        return jsonify({
            'success': False,
            'error': f"Invalid level: {request.args.get('nivel')}"
        }), 400
    except Exception as e:
        return jsonify({
            'success': False,
            'error': str(e)
        }), 500


@api_bp.route('/avisos/resumen', methods=['GET'])
def get_summary():
    """Per-area status of the alerts currently in force."""
    try:
        settings = _settings()
        records = load_records(settings.data_dir)
        return jsonify({
            'success': True,
            'areas': build_summary(records, settings.areas, settings.area_names)
        })

    except Exception as e:
        return jsonify({
            'success': False,
            'error': str(e)
        }), 500


@api_bp.route('/meta', methods=['GET'])
def get_meta():
    """Source audit trail of the last run."""
    try:
        return jsonify({
            'success': True,
            'audit': load_audit(_settings().data_dir)
        })

    except Exception as e:
        return jsonify({
            'success': False,
            'error': str(e)
        }), 500


@api_bp.route('/archive/records', methods=['GET'])
def search_archived_records():
    """
    Search archived records.

    Query params:
        zone: str - Zone code prefix
        nivel: str - Level filter
        event: str - Event name substring
        run: int - Run ID
        limit: int - Max results (default 100)
        offset: int - Result offset (default 0)
    """
    archive = _archive()
    if archive is None:
        return jsonify({
            'success': False,
            'error': 'Archive not enabled'
        }), 400

    try:
        run_id = request.args.get('run')
        records = archive.search_records(
            zone_prefix=request.args.get('zone'),
            level=_parse_level(request.args.get('nivel')),
            event=request.args.get('event'),
            run_id=int(run_id) if run_id else None,
            limit=int(request.args.get('limit', 100)),
            offset=int(request.args.get('offset', 0))
        )

        return jsonify({
            'success': True,
            'count': len(records),
            'avisos': [r.to_dict() for r in records]
        })

    except (KeyError, ValueError) as e:
        return jsonify({
            'success': False,
            'error': f'Invalid query: {e}'
        }), 400


@api_bp.route('/archive/runs/<int:run_id>', methods=['GET'])
def get_archived_run(run_id):
    """Get one archived run with its audit trail."""
    archive = _archive()
    if archive is None:
        return jsonify({
            'success': False,
            'error': 'Archive not enabled'
        }), 400

    run = archive.get_run(run_id)
    if not run:
        return jsonify({
            'success': False,
            'error': 'Run not found'
        }), 404

    return jsonify({
        'success': True,
        'run': run.to_dict()
    })


@api_bp.route('/archive/stats', methods=['GET'])
def archive_stats():
    """Get archive statistics."""
    archive = _archive()
    if archive is None:
        return jsonify({
            'success': False,
            'error': 'Archive not enabled'
        }), 400

    return jsonify({
        'success': True,
        'stats': archive.get_stats()
    })
