"""Tests for the command line entry point."""

from unittest.mock import MagicMock

import pytest

import sli_demo.cli as cli
from sli_metrics.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in ("PROJECT_ID", "EXPORT_INTERVAL_SECONDS", "PORT", "PUSHGATEWAY_URL"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(cli, "load_dotenv", lambda: None)


class TestParser:
    def test_project_id_flag(self) -> None:
        args = cli.create_parser().parse_args(["--project_id", "my-project"])

        assert args.project_id == "my-project"

    def test_project_id_defaults_to_none(self) -> None:
        args = cli.create_parser().parse_args([])

        assert args.project_id is None

    def test_unknown_flags_rejected(self) -> None:
        with pytest.raises(SystemExit):
            cli.create_parser().parse_args(["--port", "9000"])


class TestLoadSettings:
    def test_flag_value_used(self) -> None:
        settings = cli.load_settings("flag-project")

        assert settings.project_id == "flag-project"

    def test_environment_value_used_without_flag(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PROJECT_ID", "env-project")

        settings = cli.load_settings(None)

        assert settings.project_id == "env-project"

    def test_missing_project_exits_with_code_1(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            cli.load_settings(None)

        assert exc_info.value.code == 1


class TestMain:
    def test_main_serves_app_and_exits_cleanly(self, monkeypatch: pytest.MonkeyPatch) -> None:
        app = MagicMock()
        serve_calls = []
        monkeypatch.setattr("sys.argv", ["sli-metrics-demo", "--project_id", "my-project"])
        monkeypatch.setattr(cli, "create_app", lambda settings: app)
        monkeypatch.setattr(cli, "serve_app", lambda a, s: serve_calls.append((a, s)))

        with pytest.raises(SystemExit) as exc_info:
            cli.main()

        assert exc_info.value.code == 0
        assert len(serve_calls) == 1
        assert serve_calls[0][0] is app
        assert serve_calls[0][1].project_id == "my-project"

    def test_main_exits_when_views_cannot_register(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def failing_create_app(settings):
            raise ConfigurationError("Failed to register views")

        serve_app = MagicMock()
        monkeypatch.setattr("sys.argv", ["sli-metrics-demo", "--project_id", "my-project"])
        monkeypatch.setattr(cli, "create_app", failing_create_app)
        monkeypatch.setattr(cli, "serve_app", serve_app)

        with pytest.raises(SystemExit) as exc_info:
            cli.main()

        assert exc_info.value.code == 1
        serve_app.assert_not_called()

    def test_main_without_project_exits(self, monkeypatch: pytest.MonkeyPatch) -> None:
        serve_app = MagicMock()
        monkeypatch.setattr("sys.argv", ["sli-metrics-demo"])
        monkeypatch.setattr(cli, "serve_app", serve_app)

        with pytest.raises(SystemExit) as exc_info:
            cli.main()

        assert exc_info.value.code == 1
        serve_app.assert_not_called()
