"""
plantings_api.py — Client for the plantings REST API.

The API speaks camelCase JSON (datePlanted, trayNumber, ...). This module is
the only place that shape is known: planting_from_api() translates one API
object into a Planting and everything downstream uses the Python model.

Responses are either a bare list or a paginated {"data": [...]} wrapper;
both are accepted.
"""

import logging

import requests

from models import Planting

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = 'https://micro-greens-backend.vercel.app'
DEFAULT_TIMEOUT = 10

# API field → Planting attribute
API_FIELDS = {
    'id': 'id',
    'plantName': 'plant_name',
    'datePlanted': 'date_planted',
    'expectedHarvest': 'expected_harvest',
    'domeDate': 'dome_date',
    'lightDate': 'light_date',
    'quantity': 'quantity',
    'yield': 'yield_weight',
    'notes': 'notes',
    'status': 'status',
    'trayNumber': 'tray_number',
    'plantTypeId': 'plant_type_id',
    'createdAt': 'created_at',
    'updatedAt': 'updated_at',
    'deletedAt': 'deleted_at',
}


class PlantingsAPIError(Exception):
    """The plantings API could not be reached or answered with an error."""


def planting_from_api(payload):
    """Translate one camelCase API object into a Planting."""
    values = {attr: payload.get(api_key) for api_key, attr in API_FIELDS.items()}
    values['id'] = str(values['id'] or '')
    values['status'] = values['status'] or 'PLANTED'
    return Planting(**values)


class PlantingsClient:
    """Read-only access to /api/plantings."""

    def __init__(self, base_url=DEFAULT_BASE_URL, timeout=DEFAULT_TIMEOUT, session=None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def get_plantings(self, status=None, page=None, limit=None, include_deleted=False):
        """
        Fetch plantings and translate them to Planting objects.

        Soft-deleted plantings are dropped unless include_deleted is True.
        Records that can't be translated (e.g. no planting date) are skipped
        with a warning.
        """
        params = {}
        if page:
            params['page'] = page
        if limit:
            params['limit'] = limit
        if status:
            params['status'] = status

        url = f"{self.base_url}/api/plantings"
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.error("Plantings API unreachable at %s: %s", url, exc)
            raise PlantingsAPIError(f"Could not reach plantings API: {exc}") from exc

        if not response.ok:
            logger.error("Plantings API answered %s for %s", response.status_code, url)
            raise PlantingsAPIError(f"Failed to fetch plantings: {response.status_code}")

        try:
            body = response.json()
        except ValueError as exc:
            raise PlantingsAPIError("Plantings API returned invalid JSON") from exc

        items = body.get('data', []) if isinstance(body, dict) else body

        plantings = []
        for item in items:
            try:
                planting = planting_from_api(item)
            except (ValueError, TypeError) as exc:
                logger.warning("Skipping unreadable planting %r: %s", item.get('id'), exc)
                continue
            if planting.deleted_at is not None and not include_deleted:
                continue
            plantings.append(planting)

        logger.info("Fetched %d plantings from %s", len(plantings), url)
        return plantings
