"""Tests for the exporter entry point."""

import asyncio
import threading

import pytest
from unittest.mock import AsyncMock, Mock, patch

from x509_watch.config.models import ExporterConfig
from x509_watch.config.settings import Settings
from x509_watch.main import ExporterApp, build_source, main, parse_args
from x509_watch.sources.directory_source import DirectorySource
from x509_watch.sources.file_source import FileSource


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for env_var in Settings.ENV_VARS.values():
        monkeypatch.delenv(env_var, raising=False)


class TestParseArgs:
    """Test suite for command-line parsing."""

    def test_unset_flags_are_none(self):
        args = parse_args(["--cert-dir", "/certs"])

        assert args.cert_dir == "/certs"
        assert args.cert_file is None
        assert args.listen_address is None
        assert args.interval is None
        assert args.per_cert_metrics is None

    def test_all_flags(self):
        args = parse_args([
            "--listen", "127.0.0.1:9999",
            "--cert-file", "/a.pem",
            "--interval", "1m",
            "--log-level", "debug",
            "--log-format", "text",
            "--no-per-cert-metrics",
        ])

        assert args.listen_address == "127.0.0.1:9999"
        assert args.cert_file == "/a.pem"
        assert args.interval == "1m"
        assert args.log_level == "debug"
        assert args.log_format == "text"
        assert args.per_cert_metrics is False


class TestBuildSource:
    """Test suite for source selection."""

    def test_file_source(self, logger):
        config = ExporterConfig(cert_file="/a.pem")
        assert isinstance(build_source(config, logger), FileSource)

    def test_directory_source(self, logger):
        config = ExporterConfig(cert_dir="/certs")
        assert isinstance(build_source(config, logger), DirectorySource)


class TestExporterApp:
    """Test suite for ExporterApp wiring."""

    def test_wiring(self, logger, tmp_path):
        config = ExporterConfig(cert_dir=str(tmp_path), interval="30s", per_cert_metrics=False)

        app = ExporterApp(config, logger)

        assert app.orchestrator.path == str(tmp_path)
        assert app.orchestrator.interval == 30.0
        assert app.publisher.per_cert_metrics is False
        assert app.publisher.registry is app.registry
        assert app.registry.get_sample_value("x509_valid_certs_total") == 0

    def test_build_server_binds_listen_address(self, logger):
        config = ExporterConfig(cert_file="/a.pem", listen_address="127.0.0.1:9555")

        server = ExporterApp(config, logger).build_server()

        assert server.config.host == "127.0.0.1"
        assert server.config.port == 9555

    @pytest.mark.asyncio
    async def test_run_stops_orchestrator_after_serving(self, logger, tmp_path):
        app = ExporterApp(ExporterConfig(cert_dir=str(tmp_path)), logger)

        with patch("uvicorn.Server.serve", new_callable=AsyncMock) as serve:
            await app.run()

        serve.assert_awaited_once()
        assert app.orchestrator.completed_cycles == 1
        assert app.orchestrator.cancel.is_set()

    @pytest.mark.asyncio
    async def test_one_shot_scan_finishes_before_serving(self, logger, tmp_path):
        app = ExporterApp(ExporterConfig(cert_dir=str(tmp_path)), logger)
        cycles_at_serve = []

        async def fake_serve(server, *args, **kwargs):
            cycles_at_serve.append(app.orchestrator.completed_cycles)

        with patch("uvicorn.Server.serve", new=fake_serve):
            await app.run()

        assert cycles_at_serve == [1]

    @pytest.mark.asyncio
    async def test_periodic_mode_serves_during_startup_scan(self, logger, tmp_path):
        """Test that the server starts while the first scan is still running."""
        app = ExporterApp(ExporterConfig(cert_dir=str(tmp_path), interval="1h"), logger)
        release = threading.Event()
        load = app.source.load

        def slow_load(path, cancel=None):
            release.wait(5)
            return load(path, cancel)

        app.orchestrator.source = Mock(load=Mock(side_effect=slow_load))
        cycles_at_serve = []

        async def fake_serve(server, *args, **kwargs):
            cycles_at_serve.append(app.orchestrator.completed_cycles)
            release.set()
            await asyncio.sleep(0.2)

        with patch("uvicorn.Server.serve", new=fake_serve):
            await app.run()

        assert cycles_at_serve == [0]
        assert app.orchestrator.completed_cycles == 1
        assert app.orchestrator.cancel.is_set()
        assert app.orchestrator.scheduler is None or not app.orchestrator.scheduler.running


class TestMain:
    """Test suite for main()."""

    def test_invalid_config_exits_with_status_1(self):
        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 1

    def test_missing_config_file_exits_with_status_1(self, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            main(["--config", str(tmp_path / "missing.yaml")])

        assert exc_info.value.code == 1

    def test_config_path_is_directory_exits_with_status_1(self, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            main(["--config", str(tmp_path)])

        assert exc_info.value.code == 1

    def test_infinite_interval_exits_before_scanning(self, tmp_path):
        with patch("x509_watch.main.ExporterApp") as app_class:
            with pytest.raises(SystemExit) as exc_info:
                main(["--cert-dir", str(tmp_path), "--interval", "inf"])

        assert exc_info.value.code == 1
        app_class.assert_not_called()

    def test_runs_app(self, tmp_path):
        with patch("x509_watch.main.ExporterApp.run", new_callable=AsyncMock) as run:
            main(["--cert-dir", str(tmp_path), "--log-level", "error"])

        run.assert_awaited_once()
