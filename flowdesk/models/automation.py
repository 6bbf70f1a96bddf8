"""Automation request and sweep result models."""

from pydantic import BaseModel, Field, field_validator


class AutomateTaskRequest(BaseModel):
    """Free-text description of a repetitive process to automate."""

    description: str = Field(..., min_length=1, max_length=4000)

    @field_validator("description")
    @classmethod
    def description_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("description must not be empty")
        return v


class SweepResult(BaseModel):
    """Outcome of one automation sweep."""

    processed: int = 0
    total: int = 0
    skipped: int = 0
    errors: list[str] = Field(default_factory=list)
