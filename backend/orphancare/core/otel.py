"""OpenTelemetry wiring for the donations service.

Traces, metrics and logs all go to the single OTLP collector named by
OTEL_EXPORTER_OTLP_ENDPOINT. With no endpoint configured the SDK's no-op
providers stay in place and nothing is exported.
"""
import logging
from typing import Any, Dict

from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from orphancare.core.config import settings

logger = logging.getLogger(__name__)

SERVICE_NAMESPACE = "orphancare"
SERVICE_VERSION = "1.0.0"

# Paths excluded from request tracing
UNTRACED_URLS = "health,metrics"


def build_resource() -> Resource:
    """Resource attributes shared by every signal this service exports"""
    return Resource.create({
        "service.name": settings.OTEL_SERVICE_NAME,
        "service.namespace": SERVICE_NAMESPACE,
        "service.version": SERVICE_VERSION,
        "deployment.environment": settings.OTEL_ENVIRONMENT or settings.ENVIRONMENT,
    })


def exporter_options() -> Dict[str, Any]:
    """Keyword arguments for the OTLP gRPC exporters.

    A plain http:// endpoint (in-cluster collector) is dialled without TLS.
    """
    endpoint = settings.OTEL_EXPORTER_OTLP_ENDPOINT
    return {"endpoint": endpoint, "insecure": not endpoint.startswith("https://")}


def initialize_otel() -> bool:
    """Install trace and metric providers; False when no endpoint is configured"""
    if not settings.OTEL_EXPORTER_OTLP_ENDPOINT:
        return False

    try:
        resource = build_resource()
        options = exporter_options()

        trace_provider = TracerProvider(resource=resource)
        trace_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(**options)))
        trace.set_tracer_provider(trace_provider)

        metric_reader = PeriodicExportingMetricReader(
            OTLPMetricExporter(**options),
            export_interval_millis=30000,
            export_timeout_millis=10000
        )
        metrics.set_meter_provider(MeterProvider(resource=resource, metric_readers=[metric_reader]))

        return True
    except Exception as e:
        logger.warning(f"Failed to initialize OpenTelemetry: {e}")
        return False


def setup_otel_logging() -> bool:
    """Ship records from the root logger to the collector as well"""
    if not settings.OTEL_EXPORTER_OTLP_ENDPOINT:
        return False

    try:
        from opentelemetry._logs import set_logger_provider
        from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter
        from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
        from opentelemetry.sdk._logs.export import BatchLogRecordProcessor

        logger_provider = LoggerProvider(resource=build_resource())
        set_logger_provider(logger_provider)
        logger_provider.add_log_record_processor(BatchLogRecordProcessor(OTLPLogExporter(**exporter_options())))

        logging.getLogger().addHandler(LoggingHandler(level=logging.INFO, logger_provider=logger_provider))
        return True
    except Exception as e:
        logger.warning(f"Failed to setup OTEL logging: {e}")
        return False


def instrument_fastapi(app):
    """Trace every route except health checks and metric scrapes"""
    FastAPIInstrumentor.instrument_app(app, excluded_urls=UNTRACED_URLS)


def instrument_sqlalchemy(engine):
    try:
        SQLAlchemyInstrumentor().instrument(engine=engine)
        logger.info("SQLAlchemy instrumentation enabled")
    except Exception as e:
        logger.warning(f"Failed to instrument SQLAlchemy: {e}")
