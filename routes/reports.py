"""
routes/reports.py — Report configuration and download routes.

Provides:
- GET    /reports/                      — Defaults: columns, sections, presets, formats
- GET    /reports/saved                 — List saved report configs
- POST   /reports/saved                 — Save a report config
- GET    /reports/saved/<id>            — One saved config
- DELETE /reports/saved/<id>            — Delete a saved config
- POST   /reports/saved/<id>/favorite   — Toggle the favorite flag
- POST   /reports/generate              — Generate a report from an inline config
- POST   /reports/saved/<id>/generate   — Generate a report from a saved config

Generate requests may carry the plantings inline ("plantings": [...]);
otherwise they are fetched from the plantings API.
"""

import logging
from datetime import datetime, timezone
from io import BytesIO

from flask import Blueprint, current_app, jsonify, request, send_file
from flask_wtf.csrf import generate_csrf

from models import REPORT_FORMATS, default_columns, default_sections, preset_reports
from plantings_api import PlantingsAPIError, PlantingsClient
from report_engine import generate_report
from utils.config_store import ReportConfigStore
from utils.export import RenderError, UnsupportedFormatError
from utils.validators import ValidationError, validate_plantings_payload, validate_report_config

logger = logging.getLogger(__name__)

reports_bp = Blueprint('reports', __name__, url_prefix='/reports')


def _store():
    return ReportConfigStore()


def _error(message, status):
    return jsonify({'error': message}), status


def _load_plantings(body):
    """Inline plantings if supplied, else fetch them from the plantings API."""
    if body.get('plantings') is not None:
        return validate_plantings_payload(body['plantings'])
    client = PlantingsClient(
        base_url=current_app.config['PLANTINGS_API_URL'],
        timeout=current_app.config['PLANTINGS_API_TIMEOUT'],
    )
    return client.get_plantings()


def _download(plantings, config):
    """Run the pipeline and stream the rendered file, mapping errors to HTTP codes."""
    try:
        report = generate_report(plantings, config, datetime.now(timezone.utc))
    except UnsupportedFormatError as exc:
        return _error(str(exc), 400)
    except RenderError as exc:
        return _error(str(exc), 500)

    return send_file(
        BytesIO(report.content),
        as_attachment=True,
        download_name=report.file_name,
        mimetype=report.mimetype,
    )


@reports_bp.route('/')
def index():
    """Defaults, presets, formats and a CSRF token for the X-CSRFToken header."""
    now = datetime.now(timezone.utc)
    return jsonify({
        'columns': [vars(col) for col in default_columns()],
        'sections': [vars(s) for s in default_sections()],
        'presets': [preset.to_dict() for preset in preset_reports(now)],
        'formats': list(REPORT_FORMATS),
        'csrf_token': generate_csrf(),
    })


@reports_bp.route('/saved', methods=['GET'])
def list_saved():
    return jsonify([config.to_dict() for config in _store().list_reports()])


@reports_bp.route('/saved', methods=['POST'])
def create_saved():
    """Validate and save a report config."""
    try:
        config = validate_report_config(request.get_json(silent=True), datetime.now(timezone.utc))
    except ValidationError as exc:
        logger.warning("Rejected report request: %s", exc)
        return _error(str(exc), 400)

    saved = _store().save_report(config)
    return jsonify(saved.to_dict()), 201


@reports_bp.route('/saved/<report_id>', methods=['GET'])
def get_saved(report_id):
    config = _store().get_report(report_id)
    if config is None:
        return _error("Report not found", 404)
    return jsonify(config.to_dict())


@reports_bp.route('/saved/<report_id>', methods=['DELETE'])
def delete_saved(report_id):
    if not _store().delete_report(report_id):
        return _error("Report not found", 404)
    return jsonify({'ok': True})


@reports_bp.route('/saved/<report_id>/favorite', methods=['POST'])
def toggle_favorite(report_id):
    config = _store().toggle_favorite(report_id)
    if config is None:
        return _error("Report not found", 404)
    return jsonify(config.to_dict())


@reports_bp.route('/generate', methods=['POST'])
def generate():
    """Generate and download a report from {"config": {...}, "plantings": [...]?}."""
    body = request.get_json(silent=True) or {}
    try:
        config = validate_report_config(body.get('config'), datetime.now(timezone.utc))
        plantings = _load_plantings(body)
    except ValidationError as exc:
        logger.warning("Rejected report request: %s", exc)
        return _error(str(exc), 400)
    except PlantingsAPIError as exc:
        return _error(str(exc), 502)

    return _download(plantings, config)


@reports_bp.route('/saved/<report_id>/generate', methods=['POST'])
def generate_saved(report_id):
    """Generate and download a report from a saved config."""
    config = _store().get_report(report_id)
    if config is None:
        return _error("Report not found", 404)

    body = request.get_json(silent=True) or {}
    try:
        plantings = _load_plantings(body)
    except ValidationError as exc:
        logger.warning("Rejected report request: %s", exc)
        return _error(str(exc), 400)
    except PlantingsAPIError as exc:
        return _error(str(exc), 502)

    return _download(plantings, config)
