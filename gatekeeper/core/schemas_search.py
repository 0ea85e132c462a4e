"""Pydantic schemas for spec edit search and repair sessions."""

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class EditCandidate(BaseModel):
    """A named, side-effect-free fix that can be tried on a rejected candidate."""

    model_config = ConfigDict(frozen=True)

    id: str
    tags: tuple[str, ...] = ()
    risk: float = Field(0.0, ge=0)


class EditAttempt(BaseModel):
    """One iteration of a repair session."""

    model_config = ConfigDict(frozen=True)

    fix_id: str | None = Field(None, validation_alias=AliasChoices("fix_id", "fixId"))
    success: bool = False
    reason: str | None = None


class SearchDecision(BaseModel):
    next: EditCandidate | None = None
    stop: bool = False


class EditSearchRequest(BaseModel):
    spec: dict[str, Any] = Field(default_factory=dict)
    copy_slots: dict[str, str] = Field(default_factory=dict, alias="copy")

    model_config = ConfigDict(populate_by_name=True)


class EditSearchResult(BaseModel):
    better: bool
    spec: dict[str, Any]
    copy_slots: dict[str, str] = Field(default_factory=dict, alias="copy")
    applied: list[str] = Field(default_factory=list)
    score: float = 0
    baseline_score: float = 0

    model_config = ConfigDict(populate_by_name=True)


class NextFixRequest(BaseModel):
    session_id: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("session_id", "sessionId")
    )
    candidates: list[EditCandidate] = Field(default_factory=list)
    attempt: EditAttempt | None = Field(
        None, description="Outcome of the previous fix, appended before deciding"
    )
    max_attempts: int | None = Field(
        None, ge=1, validation_alias=AliasChoices("max_attempts", "maxAttempts")
    )


class NextFixResponse(BaseModel):
    session_id: str
    decision: SearchDecision
    attempts: list[EditAttempt] = Field(default_factory=list)
    fallback: dict[str, Any] | None = None
