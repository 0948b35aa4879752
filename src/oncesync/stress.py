import asyncio
import threading
import time
from collections.abc import Awaitable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from logging import Logger

from oncesync.once import OnceValue
from oncesync.types import CallStyle, CallStyleType


class StressFailure(Exception): ...


@dataclass
class StressReport:
    style: CallStyleType
    callers: int
    sticky_on_failure: bool = False
    fail_first: bool = False
    invocations: int = 0
    results: set[int] = field(default_factory=set)
    """Distinct values observed by callers that returned normally"""
    failures: int = 0
    elapsed: float = 0.0

    @property
    def expected_invocations(self) -> int:
        # A retryable failure lets exactly one more caller run the action
        if self.fail_first and not self.sticky_on_failure and self.callers > 1:
            return 2
        return 1

    @property
    def expected_failures(self) -> int:
        if not self.fail_first:
            return 0
        return self.callers if self.sticky_on_failure else 1

    @property
    def passed(self) -> bool:
        return (
            self.invocations == self.expected_invocations
            and self.failures == self.expected_failures
            and len(self.results) <= 1
        )


def _is_blocking(style: CallStyleType, index: int) -> bool:
    if style == CallStyle.MIXED:
        return index % 2 == 0
    return style == CallStyle.BLOCKING


async def run_stress(
    callers: int,
    *,
    style: CallStyleType = 'mixed',
    workers: int = 32,
    sticky_on_failure: bool = False,
    fail_first: bool = False,
    logger: Logger | None = None,
) -> StressReport:
    """
    Races `callers` concurrent callers on a single `OnceValue[int]`.

    Blocking callers run `execute` on a thread pool of `workers` threads,
    async callers run `execute_async` as tasks of the running loop. The action
    counts its own invocations and returns that count, so every caller should
    observe the same value.

    Args:
        callers (int): Number of concurrent callers.
        style (str): 'blocking', 'async' or 'mixed' (alternating).
        workers (int): Thread pool size for blocking callers.
        sticky_on_failure (bool): Passed through to every call.
        fail_first (bool): Make the first invocation raise `StressFailure`.
        logger (Logger | None): Logger handed to the `OnceValue` under test.
    """
    report = StressReport(style, callers, sticky_on_failure, fail_first)
    counter_lock = threading.Lock()

    def action() -> int:
        with counter_lock:
            report.invocations += 1
            current = report.invocations
        if fail_first and current == 1:
            raise StressFailure('Injected failure on first invocation')
        return current

    async def async_action() -> int:
        await asyncio.sleep(0)
        return action()

    loop = asyncio.get_running_loop()
    started = time.perf_counter()
    async with OnceValue[int](logger) as once:
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix='oncesync-stress') as pool:
            calls: list[Awaitable[int]] = []
            for index in range(callers):
                if _is_blocking(style, index):
                    calls.append(loop.run_in_executor(pool, once.execute, action, sticky_on_failure))
                else:
                    calls.append(once.execute_async(async_action, sticky_on_failure))
            outcomes = await asyncio.gather(*calls, return_exceptions=True)
    report.elapsed = time.perf_counter() - started

    for outcome in outcomes:
        if isinstance(outcome, StressFailure):
            report.failures += 1
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            report.results.add(outcome)
    return report
