"""
Observability and monitoring setup for the wallet pass service.
"""

import asyncio
from typing import Optional, Dict, Any, Callable
from functools import wraps

import structlog
from opentelemetry import trace, metrics
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor

from walletpass.models.internal_models import PlatformDetectionResult

logger = structlog.get_logger()

# Global tracer and meter
tracer: Optional[trace.Tracer] = None
meter: Optional[metrics.Meter] = None

# Metrics instruments
code_issued_counter: Optional[metrics.Counter] = None
verification_counter: Optional[metrics.Counter] = None
download_counter: Optional[metrics.Counter] = None
detection_confidence_histogram: Optional[metrics.Histogram] = None
notification_counter: Optional[metrics.Counter] = None


def setup_observability(
    service_name: str = "wallet-pass-service",
    service_version: str = "1.0.0",
    otlp_endpoint: Optional[str] = None,
    enable_console_export: bool = False
) -> None:
    """
    Set up OpenTelemetry tracing and metrics.

    Args:
        service_name: Name of the service for tracing
        service_version: Version of the service
        otlp_endpoint: OTLP endpoint for trace/metric export
        enable_console_export: Whether to enable console export for development
    """
    global tracer, meter
    global code_issued_counter, verification_counter, download_counter
    global detection_confidence_histogram, notification_counter

    logger.info(
        "Setting up observability",
        service_name=service_name,
        service_version=service_version,
        otlp_endpoint=otlp_endpoint
    )

    resource = Resource.create({
        "service.name": service_name,
        "service.version": service_version,
    })

    # Set up tracing
    trace_provider = TracerProvider(resource=resource)

    if otlp_endpoint:
        trace_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint)))

    if enable_console_export:
        from opentelemetry.sdk.trace.export import ConsoleSpanExporter
        trace_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(trace_provider)
    tracer = trace.get_tracer(__name__)

    # Set up metrics
    metric_readers = []

    if otlp_endpoint:
        metric_readers.append(
            PeriodicExportingMetricReader(
                exporter=OTLPMetricExporter(endpoint=otlp_endpoint),
                export_interval_millis=30000  # 30 seconds
            )
        )

    if enable_console_export:
        from opentelemetry.sdk.metrics.export import ConsoleMetricExporter
        metric_readers.append(
            PeriodicExportingMetricReader(
                exporter=ConsoleMetricExporter(),
                export_interval_millis=60000  # 60 seconds
            )
        )

    metrics.set_meter_provider(MeterProvider(resource=resource, metric_readers=metric_readers))
    meter = metrics.get_meter(__name__)

    code_issued_counter = meter.create_counter(
        name="verification_codes_issued_total",
        description="Total number of verification codes issued",
        unit="1"
    )

    verification_counter = meter.create_counter(
        name="phone_verifications_total",
        description="Phone verification attempts by outcome",
        unit="1"
    )

    download_counter = meter.create_counter(
        name="pass_downloads_total",
        description="Pass downloads by platform and detection method",
        unit="1"
    )

    detection_confidence_histogram = meter.create_histogram(
        name="platform_detection_confidence",
        description="Confidence of platform detection decisions",
        unit="1"
    )

    notification_counter = meter.create_counter(
        name="pass_notifications_total",
        description="Pass notifications by platform and delivery status",
        unit="1"
    )

    logger.info("Observability setup completed")


def instrument_fastapi_app(app) -> None:
    """
    Instrument FastAPI application with OpenTelemetry.

    Args:
        app: FastAPI application instance
    """
    if tracer is None:
        logger.warning("Tracer not initialized, call setup_observability() first")
        return

    FastAPIInstrumentor.instrument_app(app)
    LoggingInstrumentor().instrument(set_logging_format=False)

    logger.info("FastAPI application instrumented with OpenTelemetry")


def trace_function(operation_name: Optional[str] = None):
    """
    Decorator to trace function execution.

    Args:
        operation_name: Optional custom operation name for the span
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            if tracer is None:
                return await func(*args, **kwargs)

            span_name = operation_name or f"{func.__module__}.{func.__name__}"

            with tracer.start_as_current_span(span_name) as span:
                try:
                    span.set_attribute("function.name", func.__name__)
                    span.set_attribute("function.module", func.__module__)

                    result = await func(*args, **kwargs)

                    span.set_attribute("success", True)
                    return result

                except Exception as e:
                    span.record_exception(e)
                    span.set_attribute("success", False)
                    span.set_attribute("error.type", type(e).__name__)
                    raise

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            if tracer is None:
                return func(*args, **kwargs)

            span_name = operation_name or f"{func.__module__}.{func.__name__}"

            with tracer.start_as_current_span(span_name) as span:
                try:
                    span.set_attribute("function.name", func.__name__)
                    span.set_attribute("function.module", func.__module__)

                    result = func(*args, **kwargs)

                    span.set_attribute("success", True)
                    return result

                except Exception as e:
                    span.record_exception(e)
                    span.set_attribute("success", False)
                    span.set_attribute("error.type", type(e).__name__)
                    raise

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        else:
            return sync_wrapper

    return decorator


def record_code_issued(country_code: str) -> None:
    if code_issued_counter is None:
        return
    code_issued_counter.add(1, {"country_code": country_code})


def record_verification_metrics(success: bool, outcome: str) -> None:
    """
    Record metrics for phone verification attempts.

    Args:
        success: Whether the code was accepted
        outcome: "verified" or the failure kind
    """
    if verification_counter is None:
        return

    verification_counter.add(1, {
        "success": str(success).lower(),
        "outcome": outcome
    })


def record_download_metrics(detection: PlatformDetectionResult, low_confidence: bool) -> None:
    """
    Record metrics for a pass download decision.

    Args:
        detection: Platform detection result used for routing
        low_confidence: Whether the decision was flagged as low confidence
    """
    if download_counter is None or detection_confidence_histogram is None:
        return

    attributes = {
        "platform": detection.platform.value,
        "method": detection.method.value,
        "low_confidence": str(low_confidence).lower()
    }
    download_counter.add(1, attributes)
    detection_confidence_histogram.record(detection.confidence, {"method": detection.method.value})


def record_notification_metrics(platform: str, delivered: bool) -> None:
    if notification_counter is None:
        return
    notification_counter.add(1, {
        "platform": platform,
        "status": "delivered" if delivered else "failed"
    })


def get_trace_context() -> Dict[str, Any]:
    """
    Get current trace context information.

    Returns:
        Dict with trace ID and span ID if available
    """
    current_span = trace.get_current_span()
    if current_span is None or not current_span.is_recording():
        return {}

    span_context = current_span.get_span_context()
    return {
        "trace_id": f"{span_context.trace_id:032x}",
        "span_id": f"{span_context.span_id:016x}",
    }


class TracingContextMiddleware:
    """
    Middleware to add tracing context to structured logs.
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        trace_context = get_trace_context()
        if trace_context:
            structlog.contextvars.bind_contextvars(**trace_context)

        await self.app(scope, receive, send)
