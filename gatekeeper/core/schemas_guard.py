"""Pydantic schemas for the grounding guard and response rewriting."""

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class GuardMode(str, Enum):
    STRICT = "strict"
    BALANCED = "balanced"
    LENIENT = "lenient"


class GuardAction(str, Enum):
    ALLOW = "allow"
    SOFTEN = "soften"
    BLOCK = "block"


class Citation(BaseModel):
    """A claimed source. Only http(s) URLs count as evidence."""

    url: str = ""
    title: str | None = None


class GuardThresholds(BaseModel):
    """Score floors for one guard mode."""

    model_config = ConfigDict(frozen=True)

    allow_floor: int = Field(..., ge=0, le=100)
    soften_floor: int = Field(..., ge=0, le=100)
    # Try neutralising marketing claims before blocking
    rescue_by_sanitizing: bool = False


DEFAULT_THRESHOLDS: dict[GuardMode, GuardThresholds] = {
    GuardMode.STRICT: GuardThresholds(allow_floor=75, soften_floor=55),
    GuardMode.BALANCED: GuardThresholds(allow_floor=65, soften_floor=45),
    GuardMode.LENIENT: GuardThresholds(allow_floor=55, soften_floor=35, rescue_by_sanitizing=True),
}


class GuardVerdict(BaseModel):
    """Result of one guard evaluation. Never mutated after creation."""

    model_config = ConfigDict(frozen=True)

    allowed: bool
    action: GuardAction
    score: int = Field(..., ge=0, le=100)
    reasons: tuple[str, ...] = ()
    safe_text: str | None = None


class GuardRequest(BaseModel):
    """Guard input as received over HTTP. Accepts camelCase keys."""

    text: str = ""
    domain_hint: str | None = Field(None, validation_alias=AliasChoices("domain_hint", "domainHint"))
    citations: list[Citation] = Field(default_factory=list)
    mode: GuardMode | None = None


# =============================================================================
# Text-bearing response payloads
# =============================================================================


class _TextBearingBase(BaseModel):
    citations: list[Citation] = Field(default_factory=list)
    domain_hint: str | None = None
    extra: dict[str, Any] = Field(default_factory=dict)


class TextResponse(_TextBearingBase):
    kind: Literal["text"] = "text"
    text: str


class OutputResponse(_TextBearingBase):
    kind: Literal["output"] = "output"
    output: str


class AnswerResponse(_TextBearingBase):
    kind: Literal["answer"] = "answer"
    answer: str


class ContentResponse(_TextBearingBase):
    kind: Literal["content"] = "content"
    content: str


class HtmlResponse(_TextBearingBase):
    kind: Literal["html"] = "html"
    html: str


class MarkdownResponse(_TextBearingBase):
    kind: Literal["markdown"] = "markdown"
    markdown: str


class DataTextResponse(_TextBearingBase):
    """Text nested one level down at ``data.text``."""

    kind: Literal["data_text"] = "data_text"
    data: dict[str, Any]


TextBearingResponse = Annotated[
    Union[
        TextResponse,
        OutputResponse,
        AnswerResponse,
        ContentResponse,
        HtmlResponse,
        MarkdownResponse,
        DataTextResponse,
    ],
    Field(discriminator="kind"),
]
