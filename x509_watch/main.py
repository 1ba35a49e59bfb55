"""Main application entry point for the x509-watch certificate exporter."""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

import uvicorn
import yaml
from prometheus_client import CollectorRegistry

from .config.loader import ConfigLoader
from .config.models import ExporterConfig
from .errors import ConfigurationError
from .exporter.aggregator import PrometheusPublisher, set_build_info
from .exporter.http import create_app
from .orchestrator import ScanOrchestrator
from .sources.base import CertificateSource
from .sources.directory_source import DirectorySource
from .sources.file_source import FileSource
from .utils.logger import setup_logger
from .version import __version__, get_revision


def build_source(config: ExporterConfig, logger: logging.Logger) -> CertificateSource:
    """
    Pick the source variant matching the configured location.

    Args:
        config: Validated configuration
        logger: Logger instance

    Returns:
        CertificateSource: FileSource for cert_file, DirectorySource for cert_dir
    """
    if config.cert_file:
        logger.info(f"Using file loader for {config.cert_file}")
        return FileSource(logger)
    logger.info(f"Using dir loader for {config.cert_dir}")
    return DirectorySource(logger)


class ExporterApp:
    """
    Main exporter application.

    Wires the certificate source, the Prometheus publisher and the scan
    orchestrator together and serves the registry over HTTP.
    """

    def __init__(self, config: ExporterConfig, logger: Optional[logging.Logger] = None):
        """
        Initialize exporter application.

        Args:
            config: Validated configuration
            logger: Optional logger instance
        """
        self.config = config
        self.logger = logger or setup_logger("x509_watch", config.log_level, config.log_format)

        self.registry = CollectorRegistry()
        set_build_info(self.registry, __version__, get_revision())

        self.publisher = PrometheusPublisher(
            self.registry,
            per_cert_metrics=config.per_cert_metrics,
            logger=self.logger.getChild("publisher")
        )
        self.source = build_source(config, self.logger)
        self.orchestrator = ScanOrchestrator(
            self.source,
            self.publisher,
            config.cert_path,
            interval=config.interval,
            logger=self.logger
        )
        self.http_app = create_app(self.registry)

    def build_server(self) -> uvicorn.Server:
        """Create the uvicorn server bound to the configured listen address."""
        host, port = self.config.listen_host_port
        return uvicorn.Server(uvicorn.Config(
            self.http_app,
            host=host,
            port=port,
            log_config=None,
            access_log=False,
        ))

    async def run(self) -> None:
        """
        Run the startup scan, arm periodic scans and serve until shutdown.

        In one-shot mode the scan completes before the server binds. In
        periodic mode the startup scan runs alongside the server so /healthz
        answers while a large tree is still being walked.

        uvicorn handles SIGINT/SIGTERM; once the server returns, further
        scan cycles are cancelled.
        """
        server = self.build_server()

        startup: Optional[asyncio.Task] = None
        if self.orchestrator.periodic:
            startup = asyncio.create_task(self.orchestrator.start())
        else:
            await self.orchestrator.start()

        try:
            self.logger.info(f"HTTP server listening on {self.config.listen_address}")
            await server.serve()
        finally:
            self.orchestrator.stop()
            if startup is not None:
                # The walk observes the cancellation signal and returns promptly
                await startup
            self.logger.info("HTTP server shut down")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line flags. Unset flags stay None so lower sources apply."""
    parser = argparse.ArgumentParser(
        prog='x509-watch',
        description='Prometheus exporter for X.509 certificate expiry',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Scan a single certificate once at startup
  x509-watch --cert-file=/path/to/cert.pem

  # Rescan a directory every minute with debug logs
  x509-watch --cert-dir=/etc/vault/certs --interval=1m --log-level=debug

  # Load settings from YAML, ${ENV_VAR} placeholders are substituted
  x509-watch --config /etc/x509-watch/config.yaml
        """
    )

    parser.add_argument('--config', help='Path to a YAML configuration file')
    parser.add_argument('--listen', dest='listen_address', help='HTTP listen address host:port (default: :9101)')
    parser.add_argument('--cert-file', help='Path to a certificate file (PEM/DER)')
    parser.add_argument('--cert-dir', help='Path to a directory containing certificates')
    parser.add_argument('--interval', help='Scan interval, e.g. 30s, 5m, 1h (default: 0 = only once at startup)')
    parser.add_argument('--log-level', help='Log level: debug, info, warn, error (default: info)')
    parser.add_argument('--log-format', help='Log format: json, text (default: json)')
    parser.add_argument(
        '--no-per-cert-metrics',
        dest='per_cert_metrics',
        action='store_const',
        const=False,
        default=None,
        help='Only export aggregate series, no per-certificate labels'
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None):
    """
    CLI entry point.

    Loads configuration and runs the exporter until interrupted.
    Configuration errors and bind failures exit with status 1.
    """
    args = parse_args(argv)

    overrides = {
        "listen_address": args.listen_address,
        "cert_file": args.cert_file,
        "cert_dir": args.cert_dir,
        "interval": args.interval,
        "log_level": args.log_level,
        "log_format": args.log_format,
        "per_cert_metrics": args.per_cert_metrics,
    }

    try:
        config = ConfigLoader.load(args.config, overrides)
    except (FileNotFoundError, yaml.YAMLError, ConfigurationError) as e:
        setup_logger("x509_watch").error(f"Invalid config: {e}")
        sys.exit(1)

    logger = setup_logger("x509_watch", config.log_level, config.log_format)
    setup_logger("uvicorn.error", config.log_level, config.log_format)
    logger.info(f"x509-watch {__version__} (revision {get_revision()})")

    app = ExporterApp(config, logger)

    try:
        asyncio.run(app.run())
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")


if __name__ == '__main__':
    main()
