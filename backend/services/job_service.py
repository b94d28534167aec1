import asyncio
import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

from models.aura import GenerationRequest, VideoArtifact
from models.errors import (
    AuraError,
    JobCancelledError,
    SubmissionError,
    looks_like_credential_problem,
)
from models.job import JobState, JobStatus
from services.artifact_service import ArtifactMaterializer
from services.credentials import Credential
from services.job_lifecycle import CancellationToken, JobLifecycle, RemoteVideoApi
from utils.env import settings

logger = logging.getLogger("job_service")


@dataclass
class TrackedJob:
    job_id: str
    request: GenerationRequest
    token: CancellationToken
    job_start_time: datetime
    lifecycle: Optional[JobLifecycle] = None
    task: Optional[asyncio.Task] = None
    artifact: Optional[VideoArtifact] = None
    error: Optional[str] = None
    credential_retry: bool = False
    job_end_time: Optional[datetime] = None
    finished: bool = field(default=False)


class JobService:
    """
    Runs aura generations end to end and keeps the latest one current.

    Submitting a new job supersedes the previous one: its token is
    cancelled, its artifact revoked, and whatever it produces later is
    discarded.
    """

    def __init__(
        self,
        veo_service: RemoteVideoApi,
        materializer: ArtifactMaterializer,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        logger.info("Initializing JobService...")
        self.veo_service = veo_service
        self.materializer = materializer
        self.sleep = sleep
        self.jobs: dict[str, TrackedJob] = {}
        self.current_job_id: Optional[str] = None

    @property
    def store(self):
        return self.materializer.store

    def _lifecycle(self, request: GenerationRequest, credential: Credential, token: CancellationToken, label: str) -> JobLifecycle:
        return JobLifecycle(
            self.veo_service,
            request,
            credential,
            max_attempts=settings.MAX_POLL_ATTEMPTS,
            poll_interval=settings.POLL_INTERVAL_SECONDS,
            sleep=self.sleep,
            cancel_token=token,
            label=label,
        )

    async def generate(
        self,
        request: GenerationRequest,
        credential: Credential,
        cancel_token: Optional[CancellationToken] = None,
        lifecycle: Optional[JobLifecycle] = None,
    ) -> VideoArtifact:
        """Submit, poll to completion and download; raises AuraError subclasses."""
        token = cancel_token or CancellationToken()
        lifecycle = lifecycle or self._lifecycle(request, credential, token, "generate")
        locator = await lifecycle.run()

        if token.cancelled:
            raise JobCancelledError()
        return await self.materializer.materialize(locator, credential)

    def _supersede_current(self):
        previous = self.jobs.get(self.current_job_id) if self.current_job_id else None
        if previous is None:
            return
        previous.token.cancel()
        if previous.artifact is not None:
            self.store.revoke(previous.artifact)
            previous.artifact = None
            previous.error = str(JobCancelledError())
        logger.info(f"[{previous.job_id[:8]}] Superseded by a new submission")
        self._prune_finished()

    def _prune_finished(self):
        # only called before a new job becomes current, so every finished job is stale
        stale = [job_id for job_id, job in self.jobs.items() if job.finished]
        for job_id in stale:
            job = self.jobs.pop(job_id)
            self.store.revoke(job.artifact)
        if stale:
            logger.info(f"Discarded {len(stale)} superseded job(s)")

    async def create_job(self, request: GenerationRequest, credential: Credential) -> str:
        job_id = str(uuid.uuid4())
        self._supersede_current()

        token = CancellationToken()
        job = TrackedJob(
            job_id=job_id,
            request=request,
            token=token,
            job_start_time=datetime.now(),
        )
        job.lifecycle = self._lifecycle(request, credential, token, job_id[:8])
        self.jobs[job_id] = job
        self.current_job_id = job_id

        job.task = asyncio.create_task(self._run_job(job, credential))
        logger.info(f"[{job_id[:8]}] Job created (aura={request.aura_type.name})")
        return job_id

    async def _run_job(self, job: TrackedJob, credential: Credential):
        jid = job.job_id[:8]
        try:
            artifact = await self.generate(job.request, credential, job.token, job.lifecycle)
        except AuraError as exc:
            job.error = str(exc)
            job.credential_retry = (
                exc.credential_problem if isinstance(exc, SubmissionError)
                else looks_like_credential_problem(str(exc))
            )
            logger.error(f"[{jid}] ERROR: {exc}")
        except Exception as exc:
            job.error = f"Unexpected error: {exc}"
            logger.exception(f"[{jid}] FAILED: {exc}")
        else:
            if job.token.cancelled:
                # finished after being superseded
                self.store.revoke(artifact)
                job.error = str(JobCancelledError())
                logger.info(f"[{jid}] Discarded stale result")
            else:
                job.artifact = artifact
                logger.info(f"[{jid}] Video complete")
        finally:
            job.finished = True
            job.job_end_time = datetime.now()
            if job.request.image is not None:
                # the source image is not needed once the remote call is over
                job.request = replace(job.request, image=None)
                if job.lifecycle is not None:
                    job.lifecycle.request = job.request

    async def wait_for_job(self, job_id: str) -> Optional[JobStatus]:
        job = self.jobs.get(job_id)
        if job is None:
            return None
        if job.task is not None:
            await job.task
        return await self.get_job_status(job_id)

    def get_artifact(self, job_id: str) -> Optional[VideoArtifact]:
        job = self.jobs.get(job_id)
        if job is None:
            return None
        return job.artifact

    async def get_job_status(self, job_id: str) -> Optional[JobStatus]:
        job = self.jobs.get(job_id)
        if job is None:
            return None

        lifecycle = job.lifecycle
        state = lifecycle.state if lifecycle else JobState.SUBMITTING
        attempts = lifecycle.attempts if lifecycle else 0
        max_attempts = lifecycle.max_attempts if lifecycle else settings.MAX_POLL_ATTEMPTS
        common = dict(
            state=state,
            attempts=attempts,
            max_attempts=max_attempts,
            job_start_time=job.job_start_time,
            aura_type=job.request.aura_type.value,
        )

        if job.error:
            if job.token.cancelled and state is JobState.RESOLVED:
                state = JobState.CANCELLED
                common["state"] = state
            return JobStatus(
                status="error",
                job_end_time=job.job_end_time,
                error=job.error,
                credential_retry=job.credential_retry,
                **common,
            )

        if job.finished and job.artifact is not None:
            return JobStatus(
                status="done",
                job_end_time=job.job_end_time,
                video_url=f"/api/jobs/video/{job_id}",
                **common,
            )

        return JobStatus(status="waiting", **common)

    async def shutdown(self):
        pending = []
        for job in self.jobs.values():
            job.token.cancel()
            if job.task is not None and not job.task.done():
                job.task.cancel()
                pending.append(job.task)
        if pending:
            logger.info(f"Waiting for {len(pending)} job(s) to stop")
            await asyncio.gather(*pending, return_exceptions=True)
        self.store.close()
