"""Request schema and validation for the generation endpoint.

Incoming bodies are untrusted.  :func:`validate_generation_request` turns an
arbitrary parsed JSON value into a fully populated, bounds-checked
:class:`GenerationRequest`, or raises :class:`InvalidRequestError`.

Validation is exhaustive: Pydantic collects every violated constraint, and
all of them are written to the server log.  The caller only ever sees the
generic catalog message, so the internal schema shape is not revealed.

Bounds
------
=================================  ===========================
Field                              Constraint
=================================  ===========================
``promptState.short_description``  required, 1–1000 chars
``promptState.objects``            ≤ 20 entries, each ≤ 200 chars
``promptState.camera.*``           ≤ 50 chars
``promptState.lighting.*``         ≤ 50 chars
``promptState.style_medium``       ≤ 100 chars
``refinement``                     ≤ 500 chars
``referenceImageUrl``              absolute URL, ≤ 2000 chars
``seed``                           integer in [0, 2**31 - 1] (5.0 counts)
``guidanceScale``                  number in [3, 10]
``negativePrompt``                 ≤ 500 chars
=================================  ===========================
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Annotated, Any

from pydantic import (
    AnyUrl,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
)
from pydantic.alias_generators import to_camel

from studiogen.core.errors import InvalidRequestError

logger = logging.getLogger(__name__)

MAX_SEED = 2**31 - 1
MIN_GUIDANCE_SCALE = 3.0
MAX_GUIDANCE_SCALE = 10.0

_ABSOLUTE_URL = TypeAdapter(AnyUrl)


class GenerationMode(str, Enum):
    """Whether a request starts from scratch or refines an existing image."""

    FROM_SCRATCH = "from_scratch"
    REFINE_EXISTING = "refine_existing"


class Camera(BaseModel):
    """Camera placement for the shot."""

    model_config = ConfigDict(frozen=True)

    angle: str = Field(default="eye level", max_length=50)
    view: str = Field(default="medium shot", max_length=50)


class Lighting(BaseModel):
    """Lighting setup for the shot."""

    model_config = ConfigDict(frozen=True)

    type: str = Field(default="natural", max_length=50)
    direction: str = Field(default="front", max_length=50)


class PromptState(BaseModel):
    """The user-authored structured description of the desired image.

    Optional sub-objects are filled with fixed defaults, so a validated
    instance is always complete.
    """

    model_config = ConfigDict(frozen=True)

    short_description: str = Field(..., min_length=1, max_length=1000)
    objects: list[Annotated[str, Field(max_length=200)]] = Field(
        default_factory=list,
        max_length=20,
    )
    camera: Camera = Field(default_factory=Camera)
    lighting: Lighting = Field(default_factory=Lighting)
    style_medium: str = Field(default="photograph", max_length=100)


class GenerationRequest(BaseModel):
    """A validated inbound generation call.

    Field names are snake_case in Python and camelCase on the wire
    (``promptState``, ``referenceImageUrl``, ``guidanceScale``,
    ``negativePrompt``).  Unknown keys are ignored.  Instances are frozen:
    they are built once per call and never mutated.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    prompt_state: PromptState
    refinement: str | None = Field(default=None, max_length=500)
    reference_image_url: str | None = Field(default=None, max_length=2000)
    seed: int | None = Field(default=None, ge=0, le=MAX_SEED, strict=True)
    guidance_scale: float | None = Field(
        default=None,
        ge=MIN_GUIDANCE_SCALE,
        le=MAX_GUIDANCE_SCALE,
        strict=True,
    )
    negative_prompt: str | None = Field(default=None, max_length=500)

    @field_validator("seed", mode="before")
    @classmethod
    def _accept_integral_float(cls, value: Any) -> Any:
        # JSON clients may send 5.0 for 5.  Bools and strings still fail.
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return value

    @field_validator("reference_image_url")
    @classmethod
    def _check_reference_url(cls, value: str | None) -> str | None:
        # Any absolute URL with a scheme, data: URIs included.  The input
        # string is kept; AnyUrl would normalise it.
        if value is not None:
            try:
                _ABSOLUTE_URL.validate_python(value)
            except ValidationError as exc:
                raise ValueError("Invalid reference URL") from exc
        return value

    @property
    def mode(self) -> GenerationMode:
        """Generation mode inferred from the presence of a reference image."""
        if self.reference_image_url:
            return GenerationMode.REFINE_EXISTING
        return GenerationMode.FROM_SCRATCH


def describe_validation_errors(exc: ValidationError) -> list[str]:
    """Flatten a Pydantic error into ``"location: message"`` strings."""
    described: list[str] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "<root>"
        described.append(f"{location}: {error.get('msg', 'invalid')}")
    return described


def validate_generation_request(payload: Any) -> GenerationRequest:
    """Validate a parsed JSON body into a :class:`GenerationRequest`.

    Args:
        payload: Any value produced by ``json.loads``.

    Returns:
        The validated request with defaults applied.

    Raises:
        InvalidRequestError: If any constraint is violated.  The exception
            detail lists every violation; the public message is generic.
    """
    try:
        return GenerationRequest.model_validate(payload)
    except ValidationError as exc:
        violations = describe_validation_errors(exc)
        logger.error("Validation failed: %s", "; ".join(violations))
        raise InvalidRequestError(
            f"{len(violations)} constraint violation(s): " + "; ".join(violations),
            original_error=exc,
        ) from exc
