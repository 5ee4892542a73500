"""Logging and tracing setup for the help-desk API.

Every record is stamped with the deployment environment. The ticket audit
loggers (lifecycle changes, rejected patches, failed authentication) get their
own level so they can stay at INFO while the rest of the application is
quieter, and SQL statement logging is off unless ``sql_echo`` is set.
"""

from __future__ import annotations

import logging
from logging.config import dictConfig

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from helpdesk.core.config import Settings

AUDIT_LOGGERS = ("helpdesk.tickets.service", "helpdesk.dependencies.auth")


class EnvironmentFilter(logging.Filter):
    """Attach ``environment`` to records so formats may reference it."""

    def __init__(self, environment: str) -> None:
        super().__init__()
        self.environment = environment

    def filter(self, record: logging.LogRecord) -> bool:
        record.environment = self.environment
        return True


def _to_level(name: str, default: int = logging.INFO) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else default


def configure_logging(settings: Settings) -> logging.Logger:
    """Install the console handler and per-area levels; return the ``helpdesk`` logger."""

    level = _to_level(settings.log_level)
    audit_level = _to_level(settings.audit_log_level)
    loggers: dict[str, dict[str, object]] = {
        "helpdesk": {"level": level},
        "sqlalchemy.engine": {"level": logging.INFO if settings.sql_echo else logging.WARNING},
    }
    for name in AUDIT_LOGGERS:
        loggers[name] = {"level": audit_level}

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {
                "environment": {"()": EnvironmentFilter, "environment": settings.environment},
            },
            "formatters": {"default": {"format": settings.log_format}},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "filters": ["environment"],
                }
            },
            "root": {"handlers": ["console"], "level": level},
            "loggers": loggers,
        }
    )
    return logging.getLogger("helpdesk")


def init_tracer(settings: Settings) -> TracerProvider | None:
    """Install an OTLP tracer provider when tracing is enabled.

    Exporter headers and timeouts come from the standard ``OTEL_EXPORTER_OTLP_*``
    environment variables, which the exporter reads itself.
    """

    if not settings.otel_enabled:
        return None

    resource = Resource.create(
        {
            "service.name": settings.otel_service_name,
            "deployment.environment": settings.environment,
        }
    )
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otel_exporter_otlp_endpoint)))
    trace.set_tracer_provider(provider)
    return provider


def shutdown_tracer(provider: TracerProvider | None) -> None:
    if provider is not None:
        provider.shutdown()
