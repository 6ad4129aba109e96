"""
Integration tests for the stats HTTP endpoints.
"""

import os
from unittest.mock import patch

import pytest

from config_manager import ConfigManager, SiteStatsConfig
from site_stats.errors import StorageBusyError
from site_stats.main import create_app

AJAX = {"X-Requested-With": "XMLHttpRequest"}


class TestStatsApi:
    """Test the /site-stats endpoints through the Flask test client."""

    @pytest.fixture
    def stats_config(self):
        return SiteStatsConfig()

    @pytest.fixture
    def app(self, tmp_path, stats_config):
        with patch.dict(os.environ, {}, clear=True):
            manager = ConfigManager(str(tmp_path / "site_stats_config.json"))
        app = create_app(manager, data_dir=tmp_path / "data", config_provider=lambda: stats_config)
        app.config['TESTING'] = True
        return app

    @pytest.fixture
    def client(self, app):
        """Create a test client."""
        return app.test_client()

    def _post(self, client, data, ip="8.8.8.8", headers=None):
        return client.post(
            '/site-stats/api',
            data=data,
            headers=AJAX if headers is None else headers,
            environ_base={"REMOTE_ADDR": ip}
        )

    def test_record_visit(self, client):
        """First visit reports a new visitor."""
        res = self._post(client, {"action": "record_visit", "is_new_session": "1"})

        assert res.status_code == 200
        assert res.get_json() == {
            "success": True,
            "data": {"is_new_visitor": True, "today_visit_count": 1}
        }

    def test_repeat_visit_with_session_hint(self, client):
        """A new-session hint bumps today's count for a known client."""
        self._post(client, {"action": "record_visit"})
        res = self._post(client, {"action": "record_visit", "is_new_session": "1"})

        data = res.get_json()["data"]
        assert data["is_new_visitor"] is False
        assert data["today_visit_count"] == 2

    def test_session_hint_zero_is_false(self, client):
        """'0' does not start a new session."""
        self._post(client, {"action": "record_visit"})
        res = self._post(client, {"action": "record_visit", "is_new_session": "0"})

        assert res.get_json()["data"]["today_visit_count"] == 1

    def test_json_body_is_accepted(self, client):
        """Parameters may also arrive as JSON."""
        res = client.post(
            '/site-stats/api',
            json={"action": "record_visit", "is_new_session": True},
            headers=AJAX,
            environ_base={"REMOTE_ADDR": "8.8.8.8"}
        )

        assert res.status_code == 200
        assert res.get_json()["data"]["is_new_visitor"] is True

    def test_get_stats(self, client):
        """get_stats returns all four numbers and marks the caller online."""
        self._post(client, {"action": "record_visit"}, ip="8.8.8.8")
        res = self._post(client, {"action": "get_stats"}, ip="1.1.1.1")

        assert res.status_code == 200
        assert res.get_json() == {
            "success": True,
            "data": {
                "total_visitors": 1,
                "total_views": 1,
                "today_visit_count": 1,
                "online_users": 2
            }
        }

    def test_forwarded_header_identifies_client(self, client):
        """Behind a private proxy the forwarded address is the identity."""
        headers = dict(AJAX, **{"X-Forwarded-For": "1.1.1.1"})
        self._post(client, {"action": "record_visit"}, ip="10.0.0.1", headers=headers)
        res = self._post(client, {"action": "record_visit"}, ip="10.0.0.1",
                         headers=dict(AJAX, **{"X-Forwarded-For": "9.9.9.9"}))

        assert res.get_json()["data"]["is_new_visitor"] is True

    def test_method_not_allowed(self, client):
        """Anything but POST is rejected."""
        res = client.get('/site-stats/api', headers=AJAX)

        assert res.status_code == 405
        assert res.get_json() == {"success": False, "error": "Method not allowed"}

    def test_requires_ajax_header(self, client):
        """Requests without X-Requested-With are rejected."""
        res = self._post(client, {"action": "get_stats"}, headers={})

        assert res.status_code == 400
        assert res.get_json() == {"success": False, "error": "Invalid request"}

    def test_invalid_action(self, client):
        """Unknown actions are rejected without touching state."""
        res = self._post(client, {"action": "delete_everything"})

        assert res.status_code == 400
        assert res.get_json()["error"] == "Invalid action"

    def test_missing_action(self, client):
        """An empty body is an invalid action."""
        res = self._post(client, {})

        assert res.status_code == 400
        assert res.get_json()["success"] is False

    def test_invalid_session_hint(self, app, client):
        """A malformed hint is rejected before any write."""
        res = self._post(client, {"action": "record_visit", "is_new_session": "maybe"})

        assert res.status_code == 400
        service = app.extensions["site_stats"]["service"]
        assert service.get_visitor("8.8.8.8") is None

    def test_storage_busy_maps_to_503(self, app, client):
        """A lock timeout is reported as a busy failure."""
        service = app.extensions["site_stats"]["service"]
        with patch.object(service, "record_visit", side_effect=StorageBusyError("busy")):
            res = self._post(client, {"action": "record_visit"})

        assert res.status_code == 503
        assert res.get_json() == {"success": False, "error": "busy"}

    def test_unexpected_error_maps_to_500(self, app, client):
        """Unexpected exceptions become a JSON 500."""
        service = app.extensions["site_stats"]["service"]
        with patch.object(service, "get_stats", side_effect=RuntimeError("boom")):
            res = self._post(client, {"action": "get_stats"})

        assert res.status_code == 500
        assert res.get_json()["success"] is False

    def test_client_config(self, client, stats_config):
        """Widget settings are served with the API location."""
        stats_config.update_interval = 5000
        res = client.get('/site-stats/config')

        assert res.status_code == 200
        data = res.get_json()["data"]
        assert data["update_interval"] == 5000
        assert data["animation_speed"] == "normal"
        assert data["api_url"] == "/site-stats/api"

    def test_data_directory_is_initialized(self, app, tmp_path):
        """Creating the app writes the default documents."""
        data_dir = tmp_path / "data"
        assert (data_dir / "stats.json").exists()
        assert (data_dir / "visits.json").exists()
        assert (data_dir / "online.json").exists()
        assert (data_dir / ".htaccess").exists()


class TestCreateApp:
    """App wiring from configuration."""

    def test_memory_storage_from_config(self, tmp_path):
        """storage=memory leaves the data directory alone."""
        env = {"SITE_STATS_STORAGE": "memory", "SITE_STATS_DATA_DIR": str(tmp_path / "unused")}
        with patch.dict(os.environ, env, clear=True):
            manager = ConfigManager(str(tmp_path / "site_stats_config.json"))
            app = create_app(manager)

        client = app.test_client()
        res = client.post('/site-stats/api', data={"action": "record_visit"}, headers=AJAX)

        assert res.status_code == 200
        assert not (tmp_path / "unused").exists()
