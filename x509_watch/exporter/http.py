"""FastAPI application exposing the metrics snapshot and a liveness probe."""

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest

from ..version import __version__


def create_app(registry: CollectorRegistry) -> FastAPI:
    """
    Build the HTTP application.

    Args:
        registry: Registry rendered on /metrics

    Returns:
        FastAPI: Application with /metrics and /healthz routes
    """
    app = FastAPI(
        title="x509-watch",
        description="X.509 certificate expiry exporter",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    @app.get("/metrics")
    def metrics() -> Response:
        """Prometheus scrape endpoint."""
        return Response(content=generate_latest(registry), media_type=CONTENT_TYPE_LATEST)

    @app.get("/healthz", response_class=PlainTextResponse)
    def healthz() -> str:
        """Liveness probe."""
        return "ok\n"

    return app
