import asyncio
from concurrent.futures import ThreadPoolExecutor

import pytest

from oncesync import CapturedError, DisposedError, IncompleteError, InvalidActionError, OnceValue


@pytest.fixture
def once() -> OnceValue[int]:
    return OnceValue[int]()


def test_returns_result(once: OnceValue[int]) -> None:
    assert once.execute(lambda: 10) == 10
    assert once.result == 10


@pytest.mark.asyncio
async def test_returns_result_async(once: OnceValue[int]) -> None:
    async def action() -> int:
        return 10

    assert await once.execute_async(action) == 10


def test_returns_same_result_on_subsequent_calls(once: OnceValue[int]) -> None:
    assert once.execute(lambda: 10) == 10
    assert once.execute(lambda: 20) == 10


@pytest.mark.asyncio
async def test_returns_same_result_on_subsequent_calls_async(once: OnceValue[int]) -> None:
    async def ten() -> int:
        return 10

    async def twenty() -> int:
        return 20

    assert await once.execute_async(ten) == 10
    assert await once.execute_async(twenty) == 10


@pytest.mark.asyncio
async def test_mixed_styles_return_same_result(once: OnceValue[int]) -> None:
    async def twenty() -> int:
        return 20

    assert once.execute(lambda: 10) == 10
    assert await once.execute_async(twenty) == 10


@pytest.mark.asyncio
async def test_mixed_styles_return_same_result_reversed(once: OnceValue[int]) -> None:
    async def ten() -> int:
        return 10

    assert await once.execute_async(ten) == 10
    assert once.execute(lambda: 20) == 10


def test_returns_identical_object() -> None:
    once: OnceValue[list[int]] = OnceValue()
    first = once.execute(lambda: [1])
    assert once.execute(lambda: [2]) is first


def test_caches_none_result() -> None:
    once: OnceValue[None] = OnceValue()
    calls = 0

    def action() -> None:
        nonlocal calls
        calls += 1

    assert once.execute(action) is None
    assert once.execute(action) is None
    assert calls == 1


def test_every_concurrent_caller_observes_first_result(once: OnceValue[int]) -> None:
    with ThreadPoolExecutor(max_workers=16) as ex:
        futs = [ex.submit(once.execute, lambda i=i: i) for i in range(200)]  # type: ignore[misc]
        results = {fut.result(timeout=10) for fut in futs}

    assert len(results) == 1
    assert results == {once.result}


@pytest.mark.asyncio
async def test_every_concurrent_task_observes_first_result(once: OnceValue[int]) -> None:
    def make(value: int):  # type: ignore[no-untyped-def]
        async def action() -> int:
            await asyncio.sleep(0.001)
            return value

        return action

    results = await asyncio.gather(*(once.execute_async(make(i)) for i in range(200)))
    assert set(results) == {0}


@pytest.mark.asyncio
async def test_execute_async_accepts_plain_callable(once: OnceValue[int]) -> None:
    assert await once.execute_async(lambda: 7) == 7


def test_returns_result_after_retryable_failure(once: OnceValue[int]) -> None:
    def failing() -> int:
        raise Exception('boom')

    with pytest.raises(Exception, match='boom'):
        once.execute(failing)
    assert once.execute(lambda: 10) == 10


@pytest.mark.asyncio
async def test_returns_result_after_retryable_failure_async(once: OnceValue[int]) -> None:
    def failing() -> int:
        raise Exception('boom')

    async def ten() -> int:
        return 10

    with pytest.raises(Exception, match='boom'):
        await once.execute_async(failing)
    assert await once.execute_async(ten) == 10


def test_raises_after_sticky_failure(once: OnceValue[int]) -> None:
    def failing() -> int:
        raise LookupError('missing')

    with pytest.raises(LookupError) as first:
        once.execute(failing, sticky_on_failure=True)
    with pytest.raises(LookupError) as second:
        once.execute(lambda: 10)
    with pytest.raises(LookupError):
        _ = once.result

    assert first.value is second.value


@pytest.mark.asyncio
async def test_raises_after_sticky_failure_async(once: OnceValue[int]) -> None:
    async def failing() -> int:
        raise LookupError('missing')

    async def ten() -> int:
        return 10

    with pytest.raises(LookupError):
        await once.execute_async(failing, sticky_on_failure=True)
    with pytest.raises(LookupError):
        await once.execute_async(ten)


def test_captured_error_is_comparable(once: OnceValue[int]) -> None:
    err = LookupError('missing')

    def failing() -> int:
        raise err

    with pytest.raises(LookupError):
        once.execute(failing, sticky_on_failure=True)

    assert once.error == CapturedError('LookupError', 'missing', err)
    assert once.error != CapturedError('LookupError', 'missing', LookupError('missing'))
    assert 'missing' in repr(once.error)


def test_replayed_error_keeps_original_traceback(once: OnceValue[int]) -> None:
    def failing() -> int:
        raise LookupError('missing')

    with pytest.raises(LookupError):
        once.execute(failing, sticky_on_failure=True)
    assert once.error is not None
    captured_tb = once.error.traceback

    with pytest.raises(LookupError) as replay:
        once.execute(lambda: 10)
    assert replay.value.__traceback__ is not None
    # The replay only prepends frames of the replaying call
    tb = replay.value.__traceback__
    frames = []
    while tb is not None:
        frames.append(tb.tb_frame.f_code.co_name)
        tb = tb.tb_next
    assert 'failing' in frames
    assert captured_tb is not None


def test_result_before_completion_raises(once: OnceValue[int]) -> None:
    with pytest.raises(IncompleteError):
        _ = once.result


def test_none_action_raises(once: OnceValue[int]) -> None:
    with pytest.raises(InvalidActionError):
        once.execute(None)


def test_disposed_after_completion_raises(once: OnceValue[int]) -> None:
    assert once.execute(lambda: 10) == 10
    once.dispose()

    with pytest.raises(DisposedError, match='OnceValue'):
        once.execute(lambda: 20)
    with pytest.raises(DisposedError):
        once.execute(None)


@pytest.mark.asyncio
async def test_disposed_raises_async(once: OnceValue[int]) -> None:
    once.dispose()
    with pytest.raises(DisposedError):
        await once.execute_async(lambda: 10)


def test_repr_reports_sticky_failure(once: OnceValue[int]) -> None:
    def failing() -> int:
        raise LookupError()

    with pytest.raises(LookupError):
        once.execute(failing, sticky_on_failure=True)
    assert repr(once) == '<OnceValue failed: LookupError>'


def test_execute_rejects_coroutine_function(once: OnceValue[int]) -> None:
    async def ten() -> int:
        return 10

    with pytest.raises(InvalidActionError, match='execute_async'):
        once.execute(ten)
    with pytest.raises(IncompleteError):
        _ = once.result
    assert once.execute(lambda: 20) == 20


def test_execute_does_not_cache_returned_coroutine(once: OnceValue[int]) -> None:
    async def ten() -> int:
        return 10

    with pytest.raises(InvalidActionError):
        once.execute(lambda: ten())  # type: ignore[arg-type,return-value]
    assert not once.done
    assert once.execute(lambda: 20) == 20


def test_replay_does_not_leak_handled_exception(once: OnceValue[int]) -> None:
    def failing() -> int:
        raise LookupError('missing')

    with pytest.raises(LookupError):
        once.execute(failing, sticky_on_failure=True)

    try:
        raise KeyError('private')
    except KeyError:
        with pytest.raises(LookupError) as inside:
            once.execute(lambda: 10)
    with pytest.raises(LookupError) as after:
        once.execute(lambda: 10)

    assert inside.value is after.value
    assert after.value.__context__ is None
    assert after.value.__cause__ is None


def test_replay_keeps_original_cause(once: OnceValue[int]) -> None:
    def failing() -> int:
        try:
            return {}['key']
        except KeyError as err:
            raise LookupError('missing') from err

    with pytest.raises(LookupError) as first:
        once.execute(failing, sticky_on_failure=True)
    cause = first.value.__cause__
    assert isinstance(cause, KeyError)

    try:
        raise ValueError('unrelated')
    except ValueError:
        with pytest.raises(LookupError) as replay:
            once.execute(lambda: 10)

    assert replay.value.__cause__ is cause
    assert replay.value.__context__ is cause
    assert replay.value.__suppress_context__
