"""Pydantic response models for the Studiogen API.

Request bodies are validated by :mod:`studiogen.core.schemas` inside the
generation service rather than by FastAPI, so that validation failures are
answered with the generic catalog message instead of FastAPI's detailed 422
body.  The models here describe responses for serialisation and the OpenAPI
documentation.

Models
------
GenerateImageResponse
    Success body of ``POST /api/generate-image``.
ErrorResponse
    Failure body of every generation-path error.
HistorySummary / HistoryListResponse
    ``GET /api/history`` listing.
HistoryEntry
    ``GET /api/history/{id}`` full record.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class GenerateImageResponse(BaseModel):
    """Success body: the image URL and the seed that produced it.

    The seed is always present, so a follow-up refine call can reproduce
    the image.
    """

    model_config = ConfigDict(populate_by_name=True)

    image_url: str = Field(..., alias="imageUrl")
    seed: int


class ErrorResponse(BaseModel):
    """Failure body.  The message comes from a fixed, user-safe catalog."""

    error: str


class HistorySummary(BaseModel):
    id: str
    image_url: str
    created_at: str


class HistoryListResponse(BaseModel):
    images: list[HistorySummary]


class HistoryEntry(BaseModel):
    """A stored generation record.

    Attributes:
        id: UUID of the record.
        image_url: URL returned by the provider.
        prompt_state: Validated prompt state, defaults applied.
        structured_prompt: The compiled prompt that was sent upstream.
        refinement: Trimmed refinement text, or ``None``.
        negative_prompt: Trimmed negative prompt, or ``None``.
        guidance_scale: Clamped guidance scale that was sent upstream.
        seed: Resolved seed.
        reference_image_url: Source image for refine calls.
        mode: ``"from_scratch"`` or ``"refine_existing"``.
        created_at: ISO-8601 UTC timestamp.
    """

    id: str
    image_url: str
    prompt_state: dict
    structured_prompt: dict
    refinement: str | None = None
    negative_prompt: str | None = None
    guidance_scale: float
    seed: int
    reference_image_url: str | None = None
    mode: str
    created_at: str
