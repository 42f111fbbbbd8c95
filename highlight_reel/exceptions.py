"""Custom exceptions for the highlight reel service.

Errors raised before a job exists (missing event, missing permission, full
queue) are returned to the HTTP caller directly. Errors raised inside a
running job are recorded on the job's progress record and are only visible
by polling.
"""

from highlight_reel.constants.error_codes import get_error_spec
from highlight_reel.schemas.envelope import ErrorInfo, SuggestedAction


class HighlightReelError(Exception):
    """Base exception for all highlight reel errors."""

    code: str = "INTERNAL_ERROR"
    status_code: int = 500
    message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        status_code: int | None = None,
        suggested_fix: str | None = None,
    ):
        self.message = message or self.__class__.message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.suggested_fix = suggested_fix
        super().__init__(self.message)

    def to_error_info(self) -> ErrorInfo:
        """Convert exception to ErrorInfo for API response."""
        spec = get_error_spec(self.code)

        suggested_actions: list[SuggestedAction] = []
        if "suggested_action" in spec:
            suggested_actions.append(
                SuggestedAction(
                    action=spec["suggested_action"],
                    endpoint=spec.get("suggested_endpoint"),
                    parameters=spec.get("parameters", {}),
                )
            )

        return ErrorInfo(
            code=self.code,
            message=self.message,
            retryable=spec.get("retryable", False),
            suggested_fix=self.suggested_fix or spec.get("suggested_fix"),
            suggested_actions=suggested_actions,
        )


# =============================================================================
# Synchronous errors (returned from the submit/list/delete calls)
# =============================================================================


class ResourceNotFoundError(HighlightReelError):
    """Base class for resource not found errors."""

    status_code = 404


class EventNotFoundError(ResourceNotFoundError):
    """Event does not exist."""

    code = "EVENT_NOT_FOUND"
    message = "Event not found"

    def __init__(self, event_id: str | None = None):
        message = f"Event not found: {event_id}" if event_id else self.message
        super().__init__(message)


class JobNotFoundError(ResourceNotFoundError):
    """Render job is unknown (never existed, or expired from the registry)."""

    code = "JOB_NOT_FOUND"
    message = "Render job not found"

    def __init__(self, job_id: str | None = None):
        message = f"Render job not found: {job_id}" if job_id else self.message
        super().__init__(message)


class ArtifactNotFoundError(ResourceNotFoundError):
    """Requested reel file does not exist."""

    code = "ARTIFACT_NOT_FOUND"
    message = "Highlight reel not found"

    def __init__(self, filename: str | None = None):
        message = f"Highlight reel not found: {filename}" if filename else self.message
        super().__init__(message)


class EventAccessDeniedError(HighlightReelError, PermissionError):
    """Caller may not manage this event."""

    code = "FORBIDDEN"
    status_code = 403
    message = "Not allowed to manage this event"


class InvalidArtifactNameError(HighlightReelError):
    """Artifact name carries a directory component or is otherwise unusable."""

    code = "INVALID_ARTIFACT_NAME"
    status_code = 400
    message = "Invalid highlight reel file name"

    def __init__(self, filename: str | None = None):
        message = f"Invalid highlight reel file name: {filename!r}" if filename is not None else self.message
        super().__init__(message)


class RenderQueueFullError(HighlightReelError):
    """Too many render jobs are already running or waiting."""

    code = "RENDER_QUEUE_FULL"
    status_code = 503
    message = "Too many highlight reels are being rendered, try again later"


# =============================================================================
# Job errors (recorded on the job, visible by polling only)
# =============================================================================


class NoEligibleAssetsError(HighlightReelError):
    """No approved photo could be selected or loaded for the event."""

    code = "NO_ELIGIBLE_ASSETS"
    status_code = 422
    message = "No eligible photos for this event"


class AssetAcquisitionError(HighlightReelError):
    """One photo could not be copied or downloaded; the photo is skipped."""

    code = "ASSET_ACQUISITION_FAILED"
    status_code = 422
    message = "Photo could not be loaded"

    def __init__(self, asset_id: str, reason: str):
        self.asset_id = asset_id
        self.reason = reason
        super().__init__(f"Photo {asset_id} could not be loaded: {reason}")


class EncodingProcessError(HighlightReelError):
    """The encoder exited with a non-zero status."""

    code = "ENCODING_FAILED"
    status_code = 500
    message = "Video encoding failed"

    def __init__(self, returncode: int, stderr_tail: str = ""):
        self.returncode = returncode
        self.stderr_tail = stderr_tail
        message = f"FFmpeg exited with code {returncode}"
        if stderr_tail:
            message = f"{message}: {stderr_tail}"
        super().__init__(message)


class EncodingTimeoutError(HighlightReelError):
    """The encoder ran past its deadline and was killed."""

    code = "ENCODING_TIMEOUT"
    status_code = 504
    message = "Video encoding timed out"

    def __init__(self, timeout_s: float):
        self.timeout_s = timeout_s
        super().__init__(f"Video encoding timed out after {timeout_s:g}s")


class EncoderUnavailableError(HighlightReelError):
    """The encoder binary could not be started."""

    code = "ENCODER_UNAVAILABLE"
    status_code = 500
    message = "Video encoder is not available"


class JobCancelledError(HighlightReelError):
    """Recorded on a job that was cancelled before it finished."""

    code = "JOB_CANCELLED"
    status_code = 409
    message = "Render cancelled"


class CleanupError(HighlightReelError):
    """A job workspace could not be removed. Logged, never raised to callers."""

    code = "CLEANUP_FAILED"
    message = "Workspace cleanup failed"


# =============================================================================
# Registry errors (programming errors inside the pipeline)
# =============================================================================


class InvalidJobTransitionError(HighlightReelError):
    """A status or progress write would move a job backwards."""

    code = "INVALID_JOB_TRANSITION"
    status_code = 409
    message = "Invalid job status transition"


class DuplicateJobError(HighlightReelError):
    """A job id was registered twice."""

    code = "DUPLICATE_JOB"
    status_code = 409
    message = "Render job already exists"

    def __init__(self, job_id: str):
        super().__init__(f"Render job already exists: {job_id}")
