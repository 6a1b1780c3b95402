"""End-to-end tests: upload in, line protocol out."""

import os
from unittest.mock import patch

import pytest
import requests
from fastapi.testclient import TestClient

from usage_tracker.cli import main, parse_main
from usage_tracker.tracker_app import create_app


def _accepted() -> requests.Response:
    resp = requests.Response()
    resp.status_code = 204
    resp._content = b""
    return resp


class TestTrackerApp:
    """The bundled app acknowledges uploads and forwards their sessions."""

    def test_upload_is_forwarded(self, tracker_config, read_testdata):
        client = TestClient(create_app(tracker_config))

        with patch("usage_tracker.influx_client.requests.post", return_value=_accepted()) as post:
            response = client.post("/ulecs/v1", content=read_testdata("indesign-multi-session-1-2.txt"))

        assert response.status_code == 200
        assert response.content == b""
        post.assert_called_once()
        lines = post.call_args.kwargs["data"].decode("utf-8").split("\n")
        assert len(lines) == 2
        assert all(line.startswith("session,appId=InDesign1,") for line in lines)
        assert 'sessionId="4a0c8e31-9b52-4d17-a3f6-7e1b2c9d0f48"' in lines[0]
        assert 'sessionId="e58b2d70-1f3a-4c69-9e04-b7d3a6c15f92"' in lines[1]
        assert ",launchDuration=2700.0 " in lines[0]

    def test_response_unchanged_when_backend_fails(self, tracker_config, read_testdata):
        client = TestClient(create_app(tracker_config))

        with patch(
            "usage_tracker.influx_client.requests.post",
            side_effect=requests.ConnectionError("unreachable"),
        ):
            response = client.put("/ulecs/v1", content=read_testdata("indesign-single-session-2.txt"))

        assert response.status_code == 200
        assert response.content == b""

    def test_health(self, tracker_config):
        with patch("usage_tracker.influx_client.requests.post") as post:
            response = TestClient(create_app(tracker_config)).get("/health")
        assert response.json() == {"status": "ok"}
        post.assert_not_called()


class TestParseCommand:
    """usage-tracker-parse prints the points an upload would produce."""

    @pytest.fixture(autouse=True)
    def _quiet_logging(self):
        with patch("usage_tracker.cli.configure_logging"):
            yield

    def test_prints_one_line_per_session(self, testdata_path, capsys):
        status = parse_main([
            str(testdata_path / "indesign-single-session-1.txt"),
            str(testdata_path / "indesign-multi-session-1-2.txt"),
        ])

        out = capsys.readouterr().out.strip().split("\n")
        assert status == 0
        assert len(out) == 3
        assert all(line.startswith("session,") for line in out)

    def test_missing_file(self, tmp_path, capsys):
        status = parse_main([str(tmp_path / "absent.txt")])
        assert status == 1
        assert capsys.readouterr().out == ""


class TestServeCommand:
    """usage-tracker refuses to start without a usable destination."""

    GOOD_ENV = {
        "TRACKER_ENDPOINT": "https://influx.example.com",
        "TRACKER_DATABASE": "adobe",
        "TRACKER_POLICY": "autogen",
        "TRACKER_TOKEN": "secret-token",
    }

    @pytest.fixture(autouse=True)
    def _quiet_logging(self):
        with patch("usage_tracker.cli.configure_logging"):
            yield

    def test_bad_endpoint_exits_before_serving(self):
        env = {**self.GOOD_ENV, "TRACKER_ENDPOINT": "http://influx.example.com"}
        with patch.dict(os.environ, env, clear=True):
            with patch("usage_tracker.cli.uvicorn.run") as run:
                with pytest.raises(SystemExit) as exc_info:
                    main()
        assert exc_info.value.code == 2
        run.assert_not_called()

    def test_missing_token_exits_before_serving(self):
        env = {k: v for k, v in self.GOOD_ENV.items() if k != "TRACKER_TOKEN"}
        with patch.dict(os.environ, env, clear=True):
            with patch("usage_tracker.cli.uvicorn.run") as run:
                with pytest.raises(SystemExit) as exc_info:
                    main()
        assert exc_info.value.code == 2
        run.assert_not_called()

    def test_valid_config_starts_server(self):
        env = {**self.GOOD_ENV, "TRACKER_PORT": "7100", "TRACKER_LOG_LEVEL": "INFO"}
        with patch.dict(os.environ, env, clear=True):
            with patch("usage_tracker.cli.uvicorn.run") as run:
                main()
        run.assert_called_once()
        args, kwargs = run.call_args
        assert args[0] == "usage_tracker.tracker_app:create_app"
        assert kwargs["factory"] is True
        assert kwargs["port"] == 7100
        assert kwargs["host"] == "127.0.0.1"
        assert kwargs["log_level"] == "info"
