from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Literal


class JobState(str, Enum):
    SUBMITTING = "SUBMITTING"
    POLLING = "POLLING"
    RESOLVED = "RESOLVED"
    FAILED = "FAILED"
    TIMED_OUT = "TIMED_OUT"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self not in (JobState.SUBMITTING, JobState.POLLING)


@dataclass
class JobStatus:
    status: Optional[Literal["done", "waiting", "error"]]
    state: JobState = JobState.SUBMITTING
    attempts: int = 0
    max_attempts: int = 0
    job_start_time: Optional[datetime] = None
    job_end_time: Optional[datetime] = None
    video_url: Optional[str] = None
    error: Optional[str] = None
    credential_retry: bool = False
    aura_type: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "state": self.state.value,
            "attempts": self.attempts,
            "max_attempts": self.max_attempts,
            "job_start_time": self.job_start_time.isoformat() if self.job_start_time else None,
            "job_end_time": self.job_end_time.isoformat() if self.job_end_time else None,
            "video_url": self.video_url,
            "error": self.error,
            "credential_retry": self.credential_retry,
            "aura_type": self.aura_type,
        }
