"""
Visit Counter Routes

Flask routes for the visit counter subsystem.
"""

import logging

from flask import Blueprint, request, jsonify, url_for

from ..client_identity import get_client_ip
from ..errors import SiteStatsError, InvalidRequest, MethodNotAllowed
from .services import VisitCounterService

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"", "0", "false", "no", "off"}

ALL_METHODS = ['GET', 'POST', 'PUT', 'PATCH', 'DELETE', 'OPTIONS']


def parse_session_hint(value) -> bool:
    """Interpret the is_new_session field."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise InvalidRequest("Invalid is_new_session value")


def create_visit_counter_blueprint(
    visit_counter_service: VisitCounterService,
    config_provider
) -> Blueprint:
    """Create visit counter blueprint with routes.

    Args:
        visit_counter_service: The visit counter service instance
        config_provider: Returns the current SiteStatsConfig

    Returns:
        Flask blueprint with visit counter routes
    """
    blueprint = Blueprint('site_stats', __name__, url_prefix='/site-stats')

    @blueprint.errorhandler(SiteStatsError)
    def handle_site_stats_error(error: SiteStatsError):
        if error.status_code >= 500:
            logger.error(f"Stats request failed: {error.message}")
        return jsonify({'success': False, 'error': error.message}), error.status_code

    @blueprint.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        logger.exception("Unexpected error in stats API")
        return jsonify({'success': False, 'error': 'Internal server error'}), 500

    def _request_params() -> dict:
        if request.form:
            return request.form.to_dict()
        data = request.get_json(silent=True)
        return data if isinstance(data, dict) else {}

    @blueprint.route('/api', methods=ALL_METHODS)
    def stats_api():
        """Record visits and serve counters (AJAX POST only)."""
        if request.method != 'POST':
            raise MethodNotAllowed("Method not allowed")

        if request.headers.get('X-Requested-With') != 'XMLHttpRequest':
            raise InvalidRequest("Invalid request")

        params = _request_params()
        action = params.get('action', '')
        client_ip = get_client_ip()

        if action == 'record_visit':
            is_new_session = parse_session_hint(params.get('is_new_session'))
            result = visit_counter_service.record_visit(client_ip, is_new_session)
            return jsonify({'success': True, 'data': result.to_dict()})

        if action == 'get_stats':
            # Polling keeps the caller counted as online
            visit_counter_service.update_online_presence(client_ip)
            snapshot = visit_counter_service.get_stats(client_ip)
            return jsonify({'success': True, 'data': snapshot.to_dict()})

        raise InvalidRequest("Invalid action")

    @blueprint.route('/config', methods=['GET'])
    def client_config():
        """Widget settings for the front-end poller."""
        data = config_provider().to_client_dict()
        data['api_url'] = url_for('site_stats.stats_api')
        return jsonify({'success': True, 'data': data})

    return blueprint
