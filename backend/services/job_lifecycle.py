import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Protocol

from models.aura import GenerationRequest
from models.errors import (
    AuraError,
    JobCancelledError,
    JobTimeoutError,
    MissingResultError,
    PollError,
    RemoteFailureError,
    SubmissionError,
)
from models.job import JobState
from services.credentials import Credential
from utils.env import settings

logger = logging.getLogger("job_lifecycle")


class RemoteVideoApi(Protocol):
    async def submit(self, request: GenerationRequest, credential: Credential) -> Any: ...

    async def poll(self, operation: Any, credential: Credential) -> Any: ...

    def get_error(self, operation: Any) -> Optional[str]: ...

    def get_result_locator(self, operation: Any) -> Optional[str]: ...


class CancellationToken:
    """Marks a job as superseded; checked before every remote call."""

    def __init__(self):
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class JobLifecycle:
    """
    Drives one remote generation from submission to a terminal state.

    Each call to advance() does at most one remote call:
    SUBMITTING submits, POLLING sleeps then fetches status once.
    Terminal states are RESOLVED, FAILED, TIMED_OUT and CANCELLED.
    Nothing is retried.
    """

    def __init__(
        self,
        remote: RemoteVideoApi,
        request: GenerationRequest,
        credential: Credential,
        *,
        max_attempts: Optional[int] = None,
        poll_interval: Optional[float] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        cancel_token: Optional[CancellationToken] = None,
        label: str = "job",
    ):
        self.remote = remote
        self.request = request
        self.credential = credential
        self.max_attempts = settings.MAX_POLL_ATTEMPTS if max_attempts is None else max_attempts
        self.poll_interval = settings.POLL_INTERVAL_SECONDS if poll_interval is None else poll_interval
        self.sleep = sleep
        self.cancel_token = cancel_token or CancellationToken()
        self.label = label

        self.state = JobState.SUBMITTING
        self.attempts = 0
        self.operation: Any = None
        self.result_locator: Optional[str] = None
        self.error: Optional[AuraError] = None

    @property
    def done(self) -> bool:
        return self.state.is_terminal

    def _fail(self, state: JobState, error: AuraError) -> JobState:
        self.state = state
        self.error = error
        self.operation = None
        logger.error(f"[{self.label}] {state.value}: {error}")
        return self.state

    async def advance(self) -> JobState:
        if self.done:
            return self.state

        if self.cancel_token.cancelled:
            return self._fail(JobState.CANCELLED, JobCancelledError())

        if self.state is JobState.SUBMITTING:
            return await self._submit()
        return await self._poll_once()

    async def _submit(self) -> JobState:
        variant = "image-to-video" if self.request.has_image else "text-to-video"
        logger.info(f"[{self.label}] Submitting {variant} request")
        try:
            self.operation = await self.remote.submit(self.request, self.credential)
        except Exception as exc:
            return self._fail(JobState.FAILED, SubmissionError(str(exc)))

        if getattr(self.operation, "done", False):
            return self._resolve()
        self.state = JobState.POLLING
        return self.state

    async def _poll_once(self) -> JobState:
        if self.attempts >= self.max_attempts:
            return self._fail(JobState.TIMED_OUT, JobTimeoutError(self.attempts))

        await self.sleep(self.poll_interval)

        if self.cancel_token.cancelled:
            return self._fail(JobState.CANCELLED, JobCancelledError())

        try:
            self.operation = await self.remote.poll(self.operation, self.credential)
        except Exception as exc:
            self.attempts += 1
            self._fail(JobState.FAILED, PollError(str(exc)))
            raise self.error from exc
        self.attempts += 1

        state = None
        get_state = getattr(self.remote, "get_state", None)
        if get_state is not None:
            state = get_state(self.operation)
        logger.info(f"[{self.label}] Polling attempt {self.attempts}/{self.max_attempts}, status: {state}")

        if getattr(self.operation, "done", False):
            return self._resolve()
        if self.attempts >= self.max_attempts:
            return self._fail(JobState.TIMED_OUT, JobTimeoutError(self.attempts))
        return self.state

    def _resolve(self) -> JobState:
        message = self.remote.get_error(self.operation)
        if message:
            return self._fail(JobState.FAILED, RemoteFailureError(message))

        locator = self.remote.get_result_locator(self.operation)
        if not locator:
            return self._fail(JobState.FAILED, MissingResultError())

        self.result_locator = locator
        self.state = JobState.RESOLVED
        self.operation = None
        logger.info(f"[{self.label}] Operation resolved after {self.attempts} poll(s)")
        return self.state

    async def run(self) -> str:
        """Advance until terminal; return the result locator or raise the failure."""
        while not self.done:
            await self.advance()
        if self.state is JobState.RESOLVED:
            return self.result_locator
        raise self.error
