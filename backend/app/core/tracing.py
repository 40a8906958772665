"""
OpenTelemetry tracing for the HostOps backend.

Spans cover the draft path end-to-end:
- Inbound email ingestion
- Each draft pipeline stage (load, extract, retrieve, compose, persist)

Guest PII (addresses, phone numbers, message bodies) is scrubbed before it
reaches span attributes.
"""

import os
import re
from typing import Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter, SpanExporter

SERVICE_VERSION = "0.1.0"

_EMAIL_PATTERN = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)+")
_PHONE_PATTERN = re.compile(r"\+?\d[\d\s().-]{7,}\d")
_EMAIL_KEYS = ("email", "sender", "recipient")
_CONTENT_KEYS = ("body", "content", "message", "text", "subject")


def _build_exporter(exporter_type: str) -> SpanExporter | None:
    if exporter_type == "otlp":
        endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4317")
        return OTLPSpanExporter(endpoint=endpoint, insecure=True)
    if exporter_type == "console":
        return ConsoleSpanExporter()
    return None


def setup_tracing(service_name: str = "hostops-backend") -> TracerProvider:
    """
    Initialize OpenTelemetry tracing.

    Environment variables:
    - OTEL_TRACES_EXPORTER: "otlp", "console", or "none" (default: none)
    - OTEL_EXPORTER_OTLP_ENDPOINT: collector endpoint for "otlp" (default: http://localhost:4317)
    - HOSTOPS_ENVIRONMENT: reported as deployment.environment (default: local)

    Returns:
        Configured TracerProvider
    """
    resource = Resource.create(
        {
            "service.name": service_name,
            "service.version": SERVICE_VERSION,
            "deployment.environment": os.getenv("HOSTOPS_ENVIRONMENT", "local"),
        }
    )
    provider = TracerProvider(resource=resource)

    exporter = _build_exporter(os.getenv("OTEL_TRACES_EXPORTER", "none").lower())
    if exporter is not None:
        provider.add_span_processor(BatchSpanProcessor(exporter))

    trace.set_tracer_provider(provider)
    return provider


def get_tracer(name: str = __name__) -> trace.Tracer:
    """Get a tracer instance for creating spans."""
    return trace.get_tracer(name)


def mask_email(email: str | None) -> str:
    """
    Mask an email address, keeping the first character and the domain.

    ``guest@example.com`` becomes ``g****@example.com``.
    """
    if not email:
        return "<none>"

    match = re.match(r"^([^@])([^@]*)(@.+)$", email)
    if match:
        first_char, rest, domain = match.groups()
        return f"{first_char}{'*' * min(len(rest), 5)}{domain}"

    return "***@***"


def sanitize_message_content(content: str | None, max_length: int = 100) -> str:
    """
    Truncate guest text and scrub contact details written into it.

    Guests often paste their address or phone number into the message body;
    both are replaced before the text is attached to a span.
    """
    if not content:
        return "<empty>"

    if len(content) > max_length:
        content = content[:max_length] + "..."

    content = _EMAIL_PATTERN.sub(lambda m: mask_email(m.group(0)), content)
    return _PHONE_PATTERN.sub("***PHONE***", content)


def safe_span_attributes(**kwargs: Any) -> dict[str, Any]:
    """
    Build span attributes from keyword arguments, scrubbing guest PII.

    - keys naming an address (email, sender, recipient) -> masked email
    - string values under content-like keys (body, content, message, text, subject) -> scrubbed
    - None values are dropped; non-primitive values are stringified
    """
    sanitized = {}

    for key, value in kwargs.items():
        if value is None:
            continue

        lowered = key.lower()
        if any(email_key in lowered for email_key in _EMAIL_KEYS):
            sanitized[key] = mask_email(str(value))
        elif isinstance(value, str) and any(content_key in lowered for content_key in _CONTENT_KEYS):
            sanitized[key] = sanitize_message_content(value)
        elif isinstance(value, (str, int, float, bool)):
            sanitized[key] = value
        else:
            sanitized[key] = str(value)

    return sanitized
