"""
Langfuse integration for investigation runs.

Routes the Agents SDK traces through logfire to Langfuse's OpenTelemetry
endpoint, and wraps a whole investigation in one span.
"""
import os
import base64
import logging
import contextlib

logger = logging.getLogger(__name__)

_langfuse_initialized = False


def is_langfuse_enabled() -> bool:
    return _langfuse_initialized


def setup_langfuse(public_key=None, secret_key=None, host=None):
    """
    Set up Langfuse tracing.

    Args:
        public_key: Langfuse public key (defaults to LANGFUSE_PUBLIC_KEY env var)
        secret_key: Langfuse secret key (defaults to LANGFUSE_SECRET_KEY env var)
        host: Langfuse host URL (defaults to LANGFUSE_HOST env var or https://cloud.langfuse.com)

    Returns:
        bool: True if setup was successful, False otherwise
    """
    global _langfuse_initialized

    public_key = public_key or os.environ.get("LANGFUSE_PUBLIC_KEY")
    secret_key = secret_key or os.environ.get("LANGFUSE_SECRET_KEY")
    host = host or os.environ.get("LANGFUSE_HOST", "https://cloud.langfuse.com")

    if not public_key or not secret_key:
        logger.warning("Langfuse keys not provided. Tracing will not be enabled.")
        return False

    langfuse_auth = base64.b64encode(f"{public_key}:{secret_key}".encode()).decode()
    os.environ["OTEL_EXPORTER_OTLP_ENDPOINT"] = f"{host}/api/public/otel"
    os.environ["OTEL_EXPORTER_OTLP_HEADERS"] = f"Authorization=Basic {langfuse_auth}"

    try:
        import logfire
        from opentelemetry import trace
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import SimpleSpanProcessor
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
    except ImportError as e:
        logger.error(f"Failed to import tracing packages: {e}")
        logger.error("Install the 'tracing' extra: pip install deep-investigation[tracing]")
        return False

    logfire.configure(service_name="deep_investigation", send_to_logfire=False)
    logfire.instrument_openai_agents()

    trace_provider = TracerProvider()
    trace_provider.add_span_processor(SimpleSpanProcessor(OTLPSpanExporter()))
    trace.set_tracer_provider(trace_provider)

    _langfuse_initialized = True
    logger.info("Langfuse tracing enabled")
    return True


@contextlib.contextmanager
def create_trace(name="Deep-Investigation", session_id=None, tags=None, environment=None):
    """
    Open a span carrying Langfuse attributes.

    Yields:
        The span, or None when tracing has not been set up.
    """
    if not _langfuse_initialized:
        yield None
        return

    from opentelemetry import trace

    tracer = trace.get_tracer(__name__)
    with tracer.start_as_current_span(name) as span:
        if session_id:
            span.set_attribute("langfuse.session.id", session_id)
        if tags:
            span.set_attribute("langfuse.tags", tags)
        if environment:
            span.set_attribute("langfuse.environment", environment)
        yield span
