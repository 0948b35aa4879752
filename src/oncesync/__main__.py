#!/usr/bin/env python3

import asyncio
import logging
import pathlib
import sys

from pydantic import ValidationError

import oncesync.cli as cli
import oncesync.logger as logger
import oncesync.settings as settings


def report_state(settings: settings.Settings) -> logging.Logger:
    log = logger.set_default_logger(logging.getLogger(settings.service_name), settings=settings)

    log.debug(f'Stress Callers: {settings.stress_callers}')
    log.debug(f'Stress Style: {settings.stress_style}')
    log.debug(f'Stress Workers: {settings.stress_workers}')
    log.debug(f"Sticky On Failure: {'On' if settings.sticky_on_failure else 'Off'}")

    return log


def main() -> int:
    try:
        # Load environment variables from the specified env file
        args = cli.parse_args()
        # Load settings, command line options win over the environment
        options = settings.Settings(**cli.settings_overrides(args))
    except ValidationError as e:
        print(f'Unable to load settings: {e}', file=sys.stderr)
        return 1

    # Set up logging and dump runtime settings
    log = report_state(options)
    try:
        report = asyncio.run(cli.main(log, settings=options, fail_first=args.fail_first))
    except KeyboardInterrupt:
        log.info('Cancel by user.')
        log.info('Exiting...')
        return 0

    return 0 if report.passed else 2


if __name__ == '__main__':
    # If the script is run as a module, use the directory name as the script name
    script_name = pathlib.Path(sys.argv[0]).stem
    if sys.argv[0] == __file__:
        script_path = pathlib.Path(sys.argv[0])
        script_name = script_path.parent.name.replace('_', '-')
    # Set the script name to the first argument and invoke the main function
    sys.argv[0] = script_name
    sys.exit(main())
