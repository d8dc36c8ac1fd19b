"""Schemas for manually triggered jobs."""

from typing import Any

from pydantic import BaseModel, Field


class JobRunResponse(BaseModel):
    """Summary returned once a job finished."""

    job_name: str
    summary: dict[str, Any] = Field(default_factory=dict)


__all__ = ["JobRunResponse"]
