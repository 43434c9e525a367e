"""Wire shapes: decision candidates, request bodies and the response.

Candidates are validated here before they leave the pipeline, whether they
came from the local heuristics or from a model. Two request shapes are
accepted and normalized to :class:`ExtractionRequest` immediately.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import InvalidRequestError, PayloadTooLargeError
from .types import PageText

Category = Literal[
    "Operations",
    "Finance",
    "Product",
    "Hiring",
    "Legal",
    "Strategy",
    "Sales/Go-to-market",
    "Other",
]
Strength = Literal["hard", "soft"]
Mode = Literal["local", "extract", "refine"]

MAX_QUOTE_CHARS = 280


class _Wire(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ---------------------------------------------------------------------------
# Decision candidate
# ---------------------------------------------------------------------------


class ConstraintScore(_Wire):
    score: int = Field(..., ge=1, le=10)
    evidence: str = ""


class Constraints(_Wire):
    impact: ConstraintScore
    cost: ConstraintScore
    risk: ConstraintScore
    urgency: ConstraintScore
    confidence: ConstraintScore


class Evidence(_Wire):
    page: int = Field(..., ge=1)
    quote: str = Field(..., min_length=1, max_length=MAX_QUOTE_CHARS)
    location_hint: str | None = Field(default=None, alias="locationHint")


class DecisionCandidate(_Wire):
    """A reviewable decision statement with its supporting quote."""

    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    strength: Strength
    category: Category
    decision: str = ""
    rationale: str = ""
    constraints: Constraints
    evidence: Evidence
    tags: list[str] = Field(default_factory=list)

    def wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class PageIn(_Wire):
    page: int = Field(..., ge=1)
    text: str
    char_count: int | None = Field(default=None, alias="charCount")


class RequestOptions(_Wire):
    max_candidates_per_page: int | None = Field(default=None, ge=1, le=50, alias="maxCandidatesPerPage")
    model: str | None = None
    mode: Mode | None = None


class LegacyDoc(_Wire):
    name: str = Field(..., min_length=1)
    source: str = "pdf"
    page_count: int = Field(..., ge=0, alias="pageCount")


class LegacyRequest(_Wire):
    """``{doc: {name, source, pageCount}, pages: [{page, text, charCount}], options}``"""

    doc: LegacyDoc
    pages: list[PageIn] = Field(..., min_length=1)
    options: RequestOptions = Field(default_factory=RequestOptions)


class CurrentRequest(_Wire):
    """``{docName, pages: [{page, text}], options?}``"""

    doc_name: str = Field(..., min_length=1, alias="docName")
    pages: list[PageIn] = Field(..., min_length=1)
    options: RequestOptions = Field(default_factory=RequestOptions)


@dataclass(frozen=True)
class ExtractionRequest:
    doc_name: str
    page_count: int
    pages: tuple[PageText, ...]
    options: RequestOptions

    @property
    def total_chars(self) -> int:
        return sum(len(p.text) for p in self.pages)


def _issues(exc: ValidationError) -> list[dict[str, str]]:
    return [
        {"loc": ".".join(str(part) for part in err["loc"]), "msg": err["msg"]}
        for err in exc.errors()
    ]


def parse_request(body: Any, max_total_chars: int | None = None) -> ExtractionRequest:
    """Validate either request shape and normalize it.

    Raises:
        InvalidRequestError: Body matches neither shape.
        PayloadTooLargeError: Total page text exceeds *max_total_chars*.
    """
    if not isinstance(body, dict):
        raise InvalidRequestError("Request body must be a JSON object")

    try:
        if "doc" in body:
            legacy = LegacyRequest.model_validate(body)
            name, page_count = legacy.doc.name, max(legacy.doc.page_count, len(legacy.pages))
            pages, options = legacy.pages, legacy.options
        else:
            current = CurrentRequest.model_validate(body)
            name, page_count = current.doc_name, len(current.pages)
            pages, options = current.pages, current.options
    except ValidationError as exc:
        raise InvalidRequestError("Invalid request body", _issues(exc)) from exc

    request = ExtractionRequest(
        doc_name=name,
        page_count=page_count,
        pages=tuple(PageText(page=p.page, text=p.text, file_name=name) for p in pages),
        options=options,
    )
    if max_total_chars is not None and request.total_chars > max_total_chars:
        raise PayloadTooLargeError(request.total_chars, max_total_chars)
    return request


# ---------------------------------------------------------------------------
# Response
# ---------------------------------------------------------------------------


class DocSummary(_Wire):
    name: str
    page_count: int = Field(..., alias="pageCount")


class ResponseMeta(_Wire):
    pages_received: int = Field(..., alias="pagesReceived")
    total_chars: int = Field(..., alias="totalChars")
    warnings: list[str] | None = None


class ExtractionResponse(_Wire):
    doc: DocSummary
    candidates: list[DecisionCandidate]
    meta: ResponseMeta

    def wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Model refinement output
# ---------------------------------------------------------------------------


class KeptCandidate(_Wire):
    id: str
    rewritten_decision: str | None = Field(default=None, alias="rewrittenDecision")
    reason_keep: str | None = Field(default=None, alias="reasonKeep")
    merged_from_ids: list[str] = Field(default_factory=list, alias="mergedFromIds")
    title: str | None = None
    category: str | None = None
    tags: list[str] | None = None


class RefinementResult(_Wire):
    kept_candidates: list[KeptCandidate] = Field(default_factory=list)
    drop_ids: list[str] = Field(default_factory=list)
    notes: str | None = None
