import importlib
import os
import sys
from collections.abc import Iterable
from typing import Any

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter, SpanExporter
from opentelemetry.trace import Tracer
from opentelemetry.trace.status import StatusCode

from oncesync.once import OnceValue
from oncesync.telemetry import (
    TelementryExporters as Exporters,
    TelemetryEnv as Env,
    TelemetryEnvDefaults as Defaults,
)

_OTLP_TRACE_MODULE = 'opentelemetry.exporter.otlp.proto.grpc.trace_exporter'


def _span_exporter(name: str) -> SpanExporter | None:
    match name:
        case Exporters.CONSOLE:
            return ConsoleSpanExporter(out=sys.stderr)
        case Exporters.OTLP:
            if Env.OTEL_EXPORTER_OTLP_ENDPOINT not in os.environ:
                raise ValueError(f'{Env.OTEL_EXPORTER_OTLP_ENDPOINT} environment variable not set')
            try:
                module = importlib.import_module(_OTLP_TRACE_MODULE)
            except ImportError as err:
                raise ImportError(
                    'OTLP span export needs the "oncesync[otlp]" extra, '
                    f'or drop "{Exporters.OTLP}" from {Env.OTEL_TRACES_EXPORTER}'
                ) from err
            return module.OTLPSpanExporter(insecure=True)
        case _:
            return None


def _build_provider(service_name: str, exporters: Iterable[str]) -> TracerProvider:
    provider = TracerProvider(resource=Resource.create({'service.name': service_name}))
    for name in sorted(exporters):
        if exporter := _span_exporter(name):
            provider.add_span_processor(BatchSpanProcessor(exporter))
    return provider


class TelemetryTracer:
    """Owns the `TracerProvider` installed for this process."""

    def __init__(self, service_name: str, exporters: set[str]):
        self.service_name = service_name
        self.exporters = exporters
        self.tracer_provider = _build_provider(service_name, exporters)

    def get_tracer(self, name: str = __name__, **kwargs: Any) -> Tracer:
        return self.tracer_provider.get_tracer(name, **kwargs)


_tracer_once: OnceValue[TelemetryTracer] = OnceValue()


def telemetry_tracer(
    service_name: str | None = None, exporters: set[str] | None = None
) -> TelemetryTracer:
    """
    Returns the process-wide tracer, creating and installing its provider on
    first use. Missing arguments fall back to `OTEL_SERVICE_NAME` and
    `OTEL_TRACES_EXPORTER`.

    Raises:
        RuntimeError: `service_name` differs from the installed one.
    """

    def install() -> TelemetryTracer:
        name = service_name or os.environ.get(Env.OTEL_SERVICE_NAME, Defaults.OTEL_SERVICE_NAME)
        if exporters is None:
            env = os.environ.get(Env.OTEL_TRACES_EXPORTER, Defaults.OTEL_TRACES_EXPORTER)
            names = {part.strip() for part in env.split(',') if part.strip()}
        else:
            names = exporters
        instance = TelemetryTracer(name, names)
        trace.set_tracer_provider(instance.tracer_provider)
        return instance

    # A failed setup (e.g. missing OTLP endpoint) may be retried
    instance = _tracer_once.execute(install)
    if service_name is not None and service_name != instance.service_name:
        raise RuntimeError('Overriding of current TracerProvider is not allowed')
    return instance


__all__ = [
    'TelemetryTracer',
    'telemetry_tracer',
    'StatusCode',
]


def __dir__() -> list[str]:
    return sorted(__all__)
