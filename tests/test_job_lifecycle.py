"""State machine tests for JobLifecycle with a scripted remote and fake clock."""

from __future__ import annotations

import pytest

from fakes import FakeRemote, make_operation
from models.errors import (
    JobCancelledError,
    JobTimeoutError,
    MissingResultError,
    PollError,
    RemoteFailureError,
    SubmissionError,
)
from models.job import JobState
from services.input_assembler import assemble
from services.job_lifecycle import CancellationToken, JobLifecycle

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def _lifecycle(remote, credential, fake_sleep, request=None, **kwargs):
    return JobLifecycle(
        remote,
        request or assemble(),
        credential,
        max_attempts=kwargs.pop("max_attempts", 60),
        poll_interval=kwargs.pop("poll_interval", 5.0),
        sleep=fake_sleep,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_advance_steps_through_states(credential, fake_sleep):
    remote = FakeRemote(poll_results=[make_operation(done=True, uri="https://x/y")])
    lifecycle = _lifecycle(remote, credential, fake_sleep)

    assert lifecycle.state is JobState.SUBMITTING
    assert await lifecycle.advance() is JobState.POLLING
    assert remote.poll_calls == 0
    assert await lifecycle.advance() is JobState.RESOLVED
    assert lifecycle.result_locator == "https://x/y"
    assert lifecycle.operation is None

    # terminal: further advances are no-ops
    assert await lifecycle.advance() is JobState.RESOLVED
    assert remote.poll_calls == 1
    assert len(remote.submit_calls) == 1


@pytest.mark.asyncio
async def test_stops_polling_as_soon_as_done(credential, fake_sleep):
    polls = [make_operation(done=False, state="RUNNING") for _ in range(6)]
    polls.append(make_operation(done=True, uri="https://x/done"))
    remote = FakeRemote(poll_results=polls)

    locator = await _lifecycle(remote, credential, fake_sleep).run()

    assert locator == "https://x/done"
    assert remote.poll_calls == 7
    assert fake_sleep.calls == [5.0] * 7


@pytest.mark.asyncio
async def test_times_out_after_max_attempts_without_extra_poll(credential, fake_sleep):
    remote = FakeRemote()
    lifecycle = _lifecycle(remote, credential, fake_sleep)

    with pytest.raises(JobTimeoutError):
        await lifecycle.run()

    assert lifecycle.state is JobState.TIMED_OUT
    assert remote.poll_calls == 60
    assert fake_sleep.elapsed == 300.0
    assert lifecycle.attempts == 60


@pytest.mark.asyncio
async def test_done_on_last_attempt_still_resolves(credential, fake_sleep):
    polls = [make_operation(done=False)] * 2 + [make_operation(done=True, uri="https://x/last")]
    remote = FakeRemote(poll_results=polls)

    locator = await _lifecycle(remote, credential, fake_sleep, max_attempts=3).run()

    assert locator == "https://x/last"
    assert remote.poll_calls == 3


@pytest.mark.asyncio
async def test_remote_error_becomes_remote_failure(credential, fake_sleep):
    remote = FakeRemote(poll_results=[make_operation(done=True, error={"code": 3, "message": "Safety filter"})])
    lifecycle = _lifecycle(remote, credential, fake_sleep)

    with pytest.raises(RemoteFailureError, match="Safety filter"):
        await lifecycle.run()

    assert lifecycle.state is JobState.FAILED


@pytest.mark.asyncio
async def test_done_without_locator_is_missing_result(credential, fake_sleep):
    remote = FakeRemote(poll_results=[make_operation(done=True)])
    lifecycle = _lifecycle(remote, credential, fake_sleep)

    with pytest.raises(MissingResultError):
        await lifecycle.run()

    assert lifecycle.state is JobState.FAILED


@pytest.mark.asyncio
async def test_submission_failure_is_terminal_and_not_retried(credential, fake_sleep):
    remote = FakeRemote(submit_error=RuntimeError("Requested entity was not found."))
    lifecycle = _lifecycle(remote, credential, fake_sleep)

    with pytest.raises(SubmissionError) as excinfo:
        await lifecycle.run()

    assert excinfo.value.credential_problem
    assert lifecycle.state is JobState.FAILED
    assert len(remote.submit_calls) == 1
    assert remote.poll_calls == 0
    assert fake_sleep.calls == []


@pytest.mark.asyncio
async def test_poll_transport_fault_propagates_immediately(credential, fake_sleep):
    remote = FakeRemote(poll_error_at=2)
    lifecycle = _lifecycle(remote, credential, fake_sleep)

    with pytest.raises(PollError, match="connection reset"):
        await lifecycle.run()

    assert lifecycle.state is JobState.FAILED
    assert remote.poll_calls == 2
    # a failed lifecycle never polls again
    await lifecycle.advance()
    assert remote.poll_calls == 2


@pytest.mark.asyncio
async def test_already_done_submission_skips_polling(credential, fake_sleep):
    remote = FakeRemote(submit_result=make_operation(done=True, uri="https://x/instant"))

    locator = await _lifecycle(remote, credential, fake_sleep).run()

    assert locator == "https://x/instant"
    assert remote.poll_calls == 0


@pytest.mark.asyncio
async def test_submission_receives_request_and_credential(credential, fake_sleep):
    request = assemble(image_bytes=PNG_BYTES, image_mime_type="image/png")
    remote = FakeRemote(poll_results=[make_operation(done=True, uri="https://x/y")])

    await _lifecycle(remote, credential, fake_sleep, request=request).run()

    sent_request, sent_credential = remote.submit_calls[0]
    assert sent_request is request
    assert sent_request.has_image
    assert sent_credential is credential


@pytest.mark.asyncio
async def test_cancel_before_submit(credential, fake_sleep):
    token = CancellationToken()
    token.cancel()
    remote = FakeRemote()
    lifecycle = _lifecycle(remote, credential, fake_sleep, cancel_token=token)

    with pytest.raises(JobCancelledError):
        await lifecycle.run()

    assert lifecycle.state is JobState.CANCELLED
    assert remote.submit_calls == []


@pytest.mark.asyncio
async def test_cancel_during_poll_wait_stops_polling(credential):
    token = CancellationToken()
    remote = FakeRemote()

    async def cancelling_sleep(seconds):
        if remote.poll_calls == 3:
            token.cancel()

    lifecycle = JobLifecycle(
        remote, assemble(), credential, max_attempts=60, poll_interval=5.0,
        sleep=cancelling_sleep, cancel_token=token,
    )

    with pytest.raises(JobCancelledError):
        await lifecycle.run()

    assert lifecycle.state is JobState.CANCELLED
    assert remote.poll_calls == 3
