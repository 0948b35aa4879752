import argparse
from dataclasses import MISSING, dataclass, field, fields
from logging import Logger
from typing import Any

import dotenv

from oncesync.__about__ import __version__ as VERSION
from oncesync.settings import Settings
from oncesync.stress import StressReport, run_stress
from oncesync.telemetry import (
    TelemetryAttributes as Attrs,
    TelemetrySpans as Spans,
)
from oncesync.tracer import StatusCode, telemetry_tracer


@dataclass
class Args:
    version: str = field(
        metadata={
            'help': 'Show program version',
            'action': 'version',
            'version': f'%(prog)s {VERSION}',
        }
    )
    env_file: str = field(metadata={'help': 'Path to the .env file', 'type': str})
    callers: int | None = field(
        default=None, metadata={'help': 'Number of concurrent callers', 'type': int}
    )
    workers: int | None = field(
        default=None, metadata={'help': 'Thread pool size for blocking callers', 'type': int}
    )
    style: str | None = field(
        default=None,
        metadata={'help': 'Caller style', 'choices': ['blocking', 'async', 'mixed']},
    )
    sticky_on_failure: bool = field(
        default=False, metadata={'help': 'Cache action failures', 'action': 'store_true'}
    )
    fail_first: bool = field(
        default=False, metadata={'help': 'Fail the first invocation', 'action': 'store_true'}
    )


def parse_args(argv: list[str] | None = None) -> Args:
    parser = argparse.ArgumentParser(description='oncesync stress harness')

    # Iterate over the fields of the Args dataclass to populate the parser
    for field_info in fields(Args):
        name = field_info.name
        metadata = field_info.metadata
        default = field_info.default if field_info.default is not MISSING else None
        # Add the argument to the parser
        parser.add_argument(f'--{name.replace("_", "-")}', default=default, **metadata)

    args = parser.parse_args(argv)
    dotenv.load_dotenv(args.env_file)

    return Args(**vars(args))


def settings_overrides(args: Args) -> dict[str, Any]:
    # Only options given on the command line take precedence over the environment
    overrides: dict[str, Any] = {
        'stress_callers': args.callers,
        'stress_workers': args.workers,
        'stress_style': args.style,
        'sticky_on_failure': args.sticky_on_failure or None,
    }
    return {key: value for key, value in overrides.items() if value is not None}


async def main(log: Logger, *, settings: Settings, fail_first: bool = False) -> StressReport:
    tracer = telemetry_tracer(settings.service_name).get_tracer('otel.instrumentation.stress')

    with tracer.start_as_current_span(
        Spans.STRESS_RUN,
        attributes={
            Attrs.STRESS_STYLE: settings.stress_style,
            Attrs.STRESS_CALLERS: settings.stress_callers,
            Attrs.STRESS_WORKERS: settings.stress_workers,
            Attrs.ONCE_STICKY: settings.sticky_on_failure,
        },
    ) as span:
        log.info(
            f'Racing {settings.stress_callers} {settings.stress_style} callers '
            f'on {settings.stress_workers} worker threads'
        )
        report = await run_stress(
            settings.stress_callers,
            style=settings.stress_style,
            workers=settings.stress_workers,
            sticky_on_failure=settings.sticky_on_failure,
            fail_first=fail_first,
            logger=log,
        )
        span.set_attribute(Attrs.STRESS_INVOCATIONS, report.invocations)
        span.set_attribute(Attrs.STRESS_FAILURES, report.failures)
        span.set_attribute(Attrs.STRESS_PASSED, report.passed)

        log.info(
            f'Action invoked {report.invocations} time(s), expected {report.expected_invocations}; '
            f'{report.failures} caller(s) failed; observed results: {sorted(report.results)}'
        )
        log.info(f'Elapsed: {report.elapsed:.3f}s')
        if report.passed:
            span.set_status(StatusCode.OK)
        else:
            span.set_status(StatusCode.ERROR, 'Once guarantee violated')
            log.error('Stress run FAILED: Once guarantee violated')
    return report
