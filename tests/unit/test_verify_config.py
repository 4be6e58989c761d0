"""
Unit tests for jobboard/verify_config.py - deployment configuration check.
"""

import requests

from jobboard import verify_config

from factories import create_mock_response


class TestCheckBackend:

    def test_reachable(self, settings, mocker):
        get = mocker.patch("jobboard.verify_config.requests.get", return_value=create_mock_response(200, {}))

        ok, message = verify_config.check_backend(settings)

        assert ok
        get.assert_called_once_with("https://api.example.com/api/v1/jobs", params={"limit": 1}, timeout=5.0)

    def test_connection_refused(self, settings, mocker):
        mocker.patch(
            "jobboard.verify_config.requests.get",
            side_effect=requests.ConnectionError("refused"),
        )

        ok, message = verify_config.check_backend(settings)

        assert not ok
        assert "Cannot connect" in message

    def test_error_status(self, settings, mocker):
        mocker.patch("jobboard.verify_config.requests.get", return_value=create_mock_response(500, {}))

        ok, message = verify_config.check_backend(settings)

        assert not ok
        assert "HTTP 500" in message


class TestMain:

    def test_missing_variable_fails(self, monkeypatch, capsys):
        monkeypatch.delenv("API_URL", raising=False)

        assert verify_config.main() == 1
        assert "MISSING  API_URL" in capsys.readouterr().out

    def test_all_good(self, mocker):
        mocker.patch("jobboard.verify_config.requests.get", return_value=create_mock_response(200, {}))

        assert verify_config.main() == 0

    def test_secrets_are_masked(self):
        assert verify_config._mask("FLASK_SECRET_KEY", "supersecretvalue") == "supersec..."
        assert verify_config._mask("API_URL", "https://api.example.com") == "https://api.example.com"
