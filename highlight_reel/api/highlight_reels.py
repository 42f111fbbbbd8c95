"""Highlight reel API endpoints.

Rendering runs in the background: submission returns a job id right away and
the client polls the job until it reaches ``complete`` or ``error``.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Response, status

from highlight_reel.api.deps import CurrentPrincipal, ReelService, ensure_event_access
from highlight_reel.schemas.highlight_reel import (
    JobProgressResponse,
    ReelItem,
    ReelListResponse,
    ReelOptions,
    SubmitReelResponse,
)
from highlight_reel.services.progress_registry import JobRecord

router = APIRouter()
logger = logging.getLogger(__name__)


def _to_progress_response(record: JobRecord) -> JobProgressResponse:
    return JobProgressResponse(
        job_id=record.job_id,
        event_id=record.event_id,
        status=record.status,
        progress=record.progress,
        message=record.message,
        options=record.options,
        artifact_path=record.artifact_path,
    )


@router.post(
    "/events/{event_id}/highlight-reels",
    response_model=SubmitReelResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def submit_highlight_reel(
    event_id: UUID,
    principal: CurrentPrincipal,
    service: ReelService,
    options: ReelOptions | None = None,
) -> SubmitReelResponse:
    """
    Start rendering a highlight reel for an event.

    Returns immediately with the job id; poll ``/jobs/{job_id}`` for progress.
    """
    event = await service.get_event(str(event_id))
    ensure_event_access(principal, event)

    handle = await service.submit(event, options or ReelOptions())
    record = service.get_progress(event.id, handle.job_id)
    return SubmitReelResponse(job_id=handle.job_id, status=record.status)


@router.get(
    "/events/{event_id}/highlight-reels/jobs/{job_id}",
    response_model=JobProgressResponse,
)
async def get_highlight_reel_progress(
    event_id: UUID,
    job_id: str,
    principal: CurrentPrincipal,
    service: ReelService,
) -> JobProgressResponse:
    """Latest progress of a render job. Unknown and expired jobs are 404."""
    return _to_progress_response(service.get_progress(str(event_id), job_id))


@router.post(
    "/events/{event_id}/highlight-reels/jobs/{job_id}/cancel",
    response_model=JobProgressResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def cancel_highlight_reel(
    event_id: UUID,
    job_id: str,
    principal: CurrentPrincipal,
    service: ReelService,
) -> JobProgressResponse:
    event = await service.get_event(str(event_id))
    ensure_event_access(principal, event)
    return _to_progress_response(service.cancel(event.id, job_id))


@router.get("/events/{event_id}/highlight-reels", response_model=ReelListResponse)
async def list_highlight_reels(
    event_id: UUID,
    principal: CurrentPrincipal,
    service: ReelService,
) -> ReelListResponse:
    event = await service.get_event(str(event_id))
    ensure_event_access(principal, event)

    infos = await service.list_reel_info(event)
    return ReelListResponse(
        reels=[info.public_path for info in infos],
        items=[
            ReelItem(
                filename=info.filename,
                url=info.public_path,
                size_bytes=info.size_bytes,
                created_at=info.created_at,
            )
            for info in infos
        ],
    )


@router.delete(
    "/events/{event_id}/highlight-reels/{filename}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_highlight_reel(
    event_id: UUID,
    filename: str,
    principal: CurrentPrincipal,
    service: ReelService,
) -> Response:
    event = await service.get_event(str(event_id))
    ensure_event_access(principal, event)

    await service.delete_reel(event, filename)
    logger.info(f"[REEL] Deleted {filename} for event {event.slug}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
