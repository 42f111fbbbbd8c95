"""Error codes dictionary for the highlight reel API.

Single source of truth for error codes, their retryability, and suggested
recovery actions. Used by the exception handler to build machine-readable
error responses.
"""

from typing import Any, TypedDict


class ErrorCodeSpec(TypedDict, total=False):
    """Specification for an error code."""

    retryable: bool
    suggested_action: str
    suggested_endpoint: str
    suggested_fix: str
    parameters: dict[str, Any]


ERROR_CODES: dict[str, ErrorCodeSpec] = {
    # ==========================================================================
    # Resource errors
    # ==========================================================================
    "EVENT_NOT_FOUND": {
        "retryable": False,
    },
    "JOB_NOT_FOUND": {
        "retryable": False,
        "suggested_fix": "Finished jobs expire after a while; list the event's reels instead",
        "suggested_action": "list_reels",
        "suggested_endpoint": "GET /api/events/{event_id}/highlight-reels",
    },
    "ARTIFACT_NOT_FOUND": {
        "retryable": False,
        "suggested_action": "list_reels",
        "suggested_endpoint": "GET /api/events/{event_id}/highlight-reels",
    },
    # ==========================================================================
    # Request errors
    # ==========================================================================
    "FORBIDDEN": {
        "retryable": False,
    },
    "UNAUTHORIZED": {
        "retryable": False,
    },
    "INVALID_ARTIFACT_NAME": {
        "retryable": False,
        "suggested_fix": "Pass the bare file name of the reel, without any directory part",
    },
    "VALIDATION_ERROR": {
        "retryable": False,
    },
    # ==========================================================================
    # Capacity errors (retryable)
    # ==========================================================================
    "RENDER_QUEUE_FULL": {
        "retryable": True,
        "suggested_action": "retry_with_backoff",
        "parameters": {"delay_ms": 30000, "max_retries": 3},
    },
    # ==========================================================================
    # Job failures (only visible through polling)
    # ==========================================================================
    "NO_ELIGIBLE_ASSETS": {
        "retryable": False,
        "suggested_fix": "Approve at least one photo for the event before rendering",
    },
    "ASSET_ACQUISITION_FAILED": {
        "retryable": False,
    },
    "ENCODING_FAILED": {
        "retryable": True,
        "suggested_action": "resubmit",
    },
    "ENCODING_TIMEOUT": {
        "retryable": True,
        "suggested_action": "resubmit",
        "suggested_fix": "Use fewer photos or a lower resolution",
    },
    "ENCODER_UNAVAILABLE": {
        "retryable": False,
    },
    "JOB_CANCELLED": {
        "retryable": True,
        "suggested_action": "resubmit",
    },
    # ==========================================================================
    # Internal errors
    # ==========================================================================
    "INVALID_JOB_TRANSITION": {
        "retryable": False,
    },
    "DUPLICATE_JOB": {
        "retryable": True,
        "suggested_action": "resubmit",
    },
    "CLEANUP_FAILED": {
        "retryable": False,
    },
    "INTERNAL_ERROR": {
        "retryable": True,
        "suggested_action": "retry_with_backoff",
        "parameters": {"delay_ms": 2000, "max_retries": 2},
    },
}


def get_error_spec(code: str) -> ErrorCodeSpec:
    """Get error specification by code.

    Args:
        code: The error code

    Returns:
        ErrorCodeSpec with retryable flag and suggested actions
    """
    return ERROR_CODES.get(code, {"retryable": False})


def is_retryable(code: str) -> bool:
    """Check if an error code is retryable."""
    spec = get_error_spec(code)
    return spec.get("retryable", False)
