"""Administrative trigger for the scheduled jobs."""

from fastapi import APIRouter, Depends, HTTPException, status

from app.application.use_cases.jobs import run_job
from app.domain.entities import User
from app.infrastructure.notifications import BrowserChannel
from app.interfaces.api.dependencies import get_browser_channel, require_admin
from app.interfaces.api.schemas import JobRunResponse

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.post("/{job_name}", response_model=JobRunResponse)
async def trigger_job(
    job_name: str,
    _: User = Depends(require_admin),
    channel: BrowserChannel = Depends(get_browser_channel),
) -> JobRunResponse:
    """Run ``job_name`` now and return its summary."""

    try:
        summary = await run_job(job_name, channel=channel)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return JobRunResponse(job_name=job_name, summary=summary)


__all__ = ["router"]
