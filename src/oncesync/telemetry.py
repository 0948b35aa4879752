# Environment variables
class TelemetryEnv:
    OTEL_SERVICE_NAME = 'OTEL_SERVICE_NAME'
    OTEL_TRACES_EXPORTER = 'OTEL_TRACES_EXPORTER'
    OTEL_EXPORTER_OTLP_ENDPOINT = 'OTEL_EXPORTER_OTLP_ENDPOINT'


class TelementryExporters:
    CONSOLE = 'console'
    NONE = 'none'
    OTLP = 'otlp'


# Default Environment values
class TelemetryEnvDefaults:
    OTEL_SERVICE_NAME = 'oncesync'
    OTEL_TRACES_EXPORTER = 'none'


# Attributes
class TelemetrySpans:
    STRESS_RUN = 'stress.run'


class TelemetryAttributes:
    STRESS_STYLE = 'stress.style'
    STRESS_CALLERS = 'stress.callers'
    STRESS_WORKERS = 'stress.workers'
    STRESS_INVOCATIONS = 'stress.invocations'
    STRESS_FAILURES = 'stress.failures'
    STRESS_PASSED = 'stress.passed'
    ONCE_STICKY = 'once.sticky_on_failure'
