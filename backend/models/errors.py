CREDENTIAL_PROBLEM_MARKERS = (
    "requested entity was not found",
    "api key not valid",
    "api_key_invalid",
    "permission_denied",
)


def looks_like_credential_problem(message: str | None) -> bool:
    text = (message or "").lower()
    return any(marker in text for marker in CREDENTIAL_PROBLEM_MARKERS)


class AuraError(Exception):
    """Base class for every failure surfaced by the generation pipeline."""


class ValidationError(AuraError):
    pass


class InvalidImageError(ValidationError):
    pass


class MissingCredentialError(AuraError):
    def __init__(self, message: str = "API key not found. Please select a paid API key."):
        super().__init__(message)


class CredentialSelectionCancelled(AuraError):
    pass


class SubmissionError(AuraError):
    """The remote API rejected the initial generate request."""

    @property
    def credential_problem(self) -> bool:
        return looks_like_credential_problem(str(self))


class JobError(AuraError):
    pass


class JobTimeoutError(JobError):
    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Video generation timed out after {attempts} polling attempts.")


class RemoteFailureError(JobError):
    def __init__(self, message: str):
        self.remote_message = message
        super().__init__(f"Generation failed: {message}")


class MissingResultError(JobError):
    def __init__(self, message: str = "No video URI returned."):
        super().__init__(message)


class PollError(JobError):
    """Transport fault while fetching operation status."""


class JobCancelledError(JobError):
    def __init__(self, message: str = "Job was superseded by a newer submission."):
        super().__init__(message)


class FetchError(AuraError):
    pass


class DownloadError(FetchError):
    def __init__(self, status_text: str, status: int | None = None):
        self.status_text = status_text
        self.status = status
        super().__init__(f"Failed to download video: {status_text}")
