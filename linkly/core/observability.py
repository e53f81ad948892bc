"""Observability setup: logging, tracing, metrics, and error tracking."""

import logging
import time
import uuid

import sentry_sdk
import structlog
from fastapi import FastAPI, Request, Response
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from linkly.core.config import get_settings

settings = get_settings()

REQUEST_ID_HEADER = "X-Request-ID"

HTTP_REQUESTS = Counter(
    "linkly_http_requests_total",
    "HTTP requests by route template",
    ["method", "route", "status_code"],
)

# Redirects should answer in single-digit milliseconds
HTTP_LATENCY = Histogram(
    "linkly_http_request_duration_seconds",
    "HTTP request latency by route template",
    ["method", "route"],
    buckets=[0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)

RESOLUTIONS = Counter(
    "linkly_resolutions_total",
    "Short link resolutions by outcome",
    ["outcome"],  # redirected, not_found, inactive, expired, storage_error
)

LINK_OPERATIONS = Counter(
    "linkly_link_operations_total",
    "Link lifecycle changes",
    ["operation"],  # create, activate, deactivate, delete
)

ALLOCATION_COLLISIONS = Counter(
    "linkly_allocation_collisions_total",
    "Generated short ids that were already taken",
)


def _route_template(request: Request) -> str:
    """Matched route path (e.g. ``/{short_id}``) so short ids never become labels."""
    route = request.scope.get("route")
    return getattr(route, "path", "unmatched")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a request ID into the log context, then log and measure the request.

    The ID is taken from the X-Request-ID header when the caller sends one and
    is echoed back on the response.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        started = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - started

        route = _route_template(request)
        HTTP_REQUESTS.labels(request.method, route, response.status_code).inc()
        HTTP_LATENCY.labels(request.method, route).observe(elapsed)

        structlog.get_logger().info(
            "Request handled",
            route=route,
            status_code=response.status_code,
            duration_ms=round(elapsed * 1000, 2),
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def configure_structlog() -> None:
    """Route structlog and stdlib logging through one renderer.

    JSON in deployments, coloured key/value output when ``LOG_JSON=false``.
    Library loggers (uvicorn, sqlalchemy) get the same timestamp and level
    fields as application logs.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer()
        if settings.log_json
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.format_exc_info,
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(logging.DEBUG if settings.debug else settings.log_level.upper())


def setup_opentelemetry(app: FastAPI) -> None:
    """Export traces over OTLP when an endpoint is configured."""
    log = structlog.get_logger()
    if not settings.otlp_endpoint:
        log.info("Tracing disabled", reason="no OTLP endpoint")
        return

    resource = Resource.create(
        {SERVICE_NAME: settings.app_name.lower(), SERVICE_VERSION: settings.app_version}
    )
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(
        BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otlp_endpoint, insecure=True))
    )
    trace.set_tracer_provider(provider)
    FastAPIInstrumentor.instrument_app(app, excluded_urls="/metrics,/api/v1/health")

    log.info("Tracing enabled", otlp_endpoint=settings.otlp_endpoint)


def setup_sentry() -> None:
    """Report unhandled errors to Sentry when a DSN is configured."""
    log = structlog.get_logger()
    if not settings.sentry_dsn:
        log.info("Sentry disabled", reason="no DSN")
        return

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        release=f"linkly@{settings.app_version}",
        traces_sample_rate=0.1,
        integrations=[
            StarletteIntegration(transaction_style="endpoint"),
            FastApiIntegration(transaction_style="endpoint"),
        ],
        send_default_pii=False,  # Client IPs stay out of Sentry
    )

    log.info("Sentry enabled", environment=settings.environment)


def setup_observability(app: FastAPI) -> None:
    """Configure logging, error tracking, tracing and the /metrics endpoint."""
    configure_structlog()
    setup_sentry()
    setup_opentelemetry(app)

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


def record_resolution(outcome: str) -> None:
    RESOLUTIONS.labels(outcome=outcome).inc()


def record_link_operation(operation: str) -> None:
    LINK_OPERATIONS.labels(operation=operation).inc()


def record_allocation_collision() -> None:
    ALLOCATION_COLLISIONS.inc()
