"""Tests for __main__.py entry point."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from hookdeploy.config import ServerConfig
from hookdeploy.errors import ListenerError


@pytest.fixture
def env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """A complete, valid environment."""
    monkeypatch.setenv("WEBHOOK_SECRET", "testsecret")
    monkeypatch.setenv("PORT", "9123")
    monkeypatch.setenv("DEPLOY_SCRIPT", str(tmp_path / "deploy.sh"))
    monkeypatch.delenv("LOG_DIR", raising=False)


class TestMainStartup:
    def test_missing_secret_exits_without_serving(self, monkeypatch: pytest.MonkeyPatch) -> None:
        from hookdeploy.__main__ import main

        monkeypatch.delenv("WEBHOOK_SECRET", raising=False)
        with (
            patch("hookdeploy.__main__.setup_logging"),
            patch("hookdeploy.__main__.WebhookServer") as server_cls,
            patch("hookdeploy.__main__.serve", new_callable=AsyncMock) as serve,
            pytest.raises(SystemExit) as exc_info,
        ):
            main([])

        assert exc_info.value.code == 1
        serve.assert_not_called()
        server_cls.assert_not_called()

    def test_missing_secret_logged(
        self, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
    ) -> None:
        from hookdeploy.__main__ import main

        monkeypatch.delenv("WEBHOOK_SECRET", raising=False)
        with patch("hookdeploy.__main__.setup_logging"), pytest.raises(SystemExit):
            main([])

        assert "WEBHOOK_SECRET environment variable required" in caplog.text

    def test_invalid_port_exits(self, env: None, monkeypatch: pytest.MonkeyPatch) -> None:
        from hookdeploy.__main__ import main

        monkeypatch.setenv("PORT", "http")
        with (
            patch("hookdeploy.__main__.setup_logging"),
            patch("hookdeploy.__main__.serve", new_callable=AsyncMock) as serve,
            pytest.raises(SystemExit) as exc_info,
        ):
            main([])

        assert exc_info.value.code == 1
        serve.assert_not_called()

    def test_valid_env_serves(self, env: None) -> None:
        from hookdeploy.__main__ import main

        with (
            patch("hookdeploy.__main__.setup_logging") as setup,
            patch("hookdeploy.__main__.serve", new_callable=AsyncMock) as serve,
        ):
            main([])

        serve.assert_awaited_once()
        config = serve.await_args.args[0]
        assert isinstance(config, ServerConfig)
        assert config.port == 9123
        setup.assert_called_once()

    def test_verbose_flag(self, env: None) -> None:
        from hookdeploy.__main__ import main

        with (
            patch("hookdeploy.__main__.setup_logging") as setup,
            patch("hookdeploy.__main__.serve", new_callable=AsyncMock),
        ):
            main(["--verbose"])

        assert setup.call_args.kwargs["verbose"] is True

    def test_bind_failure_exits(self, env: None, caplog: pytest.LogCaptureFixture) -> None:
        from hookdeploy.__main__ import main

        with (
            patch("hookdeploy.__main__.setup_logging"),
            patch("hookdeploy.__main__.shutdown_logging") as shutdown,
            patch(
                "hookdeploy.__main__.serve",
                new_callable=AsyncMock,
                side_effect=ListenerError("cannot listen on 0.0.0.0:9123: in use"),
            ),
            pytest.raises(SystemExit) as exc_info,
        ):
            main([])

        assert exc_info.value.code == 1
        assert "Failed to start: cannot listen on 0.0.0.0:9123" in caplog.text
        shutdown.assert_called_once()

    def test_runtime_os_error_not_reported_as_start_failure(
        self, env: None, caplog: pytest.LogCaptureFixture
    ) -> None:
        from hookdeploy.__main__ import main

        with (
            patch("hookdeploy.__main__.setup_logging"),
            patch("hookdeploy.__main__.shutdown_logging") as shutdown,
            patch(
                "hookdeploy.__main__.serve",
                new_callable=AsyncMock,
                side_effect=OSError(24, "Too many open files"),
            ),
            pytest.raises(OSError, match="Too many open files"),
        ):
            main([])

        assert "Failed to start" not in caplog.text
        shutdown.assert_called_once()

    def test_help_does_not_load_config(self, monkeypatch: pytest.MonkeyPatch) -> None:
        from hookdeploy.__main__ import main

        monkeypatch.delenv("WEBHOOK_SECRET", raising=False)
        with (
            patch("hookdeploy.__main__._print_usage") as usage,
            patch("hookdeploy.__main__.serve", new_callable=AsyncMock) as serve,
        ):
            main(["--help"])

        usage.assert_called_once()
        serve.assert_not_called()


class TestServe:
    async def test_bind_failure_becomes_listener_error(self, env: None) -> None:
        from hookdeploy.__main__ import serve

        server = MagicMock()
        server.start = AsyncMock(side_effect=OSError("bind failed"))
        server.stop = AsyncMock()
        with (
            patch("hookdeploy.__main__.WebhookServer", return_value=server),
            pytest.raises(ListenerError, match=r"cannot listen on .*:9123: bind failed") as exc,
        ):
            await serve(ServerConfig.from_env())

        assert isinstance(exc.value.__cause__, OSError)
        server.stop.assert_not_awaited()

    async def test_server_wired_with_configured_deployer(self, env: None) -> None:
        from hookdeploy.__main__ import serve

        server = MagicMock()
        server.start = AsyncMock(side_effect=OSError("stop here"))
        config = ServerConfig.from_env({"WEBHOOK_SECRET": "s", "DEPLOY_TIMEOUT": "30"})
        with (
            patch("hookdeploy.__main__.WebhookServer", return_value=server) as server_cls,
            pytest.raises(ListenerError),
        ):
            await serve(config)

        passed_config, deployer = server_cls.call_args.args
        assert passed_config is config
        assert deployer.script == config.deploy_script
        assert deployer._timeout == 30.0
