"""Structured prompt compilation for the upstream image provider.

The provider does not take free text.  It takes a nested *structured prompt*
describing the subject, the objects in frame, the camera, the lighting and
the aesthetics.  This module turns a validated :class:`PromptState` (plus the
optional refinement and generation settings) into that payload.

Compilation is deterministic for a fixed seed: compiling the same input
twice yields byte-identical JSON.

Compiled Structure::

    {
      "structured_prompt": {
        "short_description": "<description>[. <refinement>]",
        "objects": [
          {"description": obj0, "location": "center", "relationship": "main subject"},
          {"description": objN, "location": "background", "relationship": "supporting element"}
        ],
        "background_setting": "studio background",
        "style_medium": ...,
        "photographic_characteristics": {...},
        "lighting": {...},
        "aesthetics": {...},
        "context": "professional photo shoot"
      },
      "aspect_ratio": "3:4",
      "steps_num": 30,
      "guidance_scale": 3..10,
      "seed": ...,
      "negative_prompt": ...,   # only when non-blank
      "image_url": ...          # only in refine mode
    }

Usage
-----
::

    upstream = compile_generation_request(request)
    payload = upstream.to_payload()
"""

from __future__ import annotations

import random

from pydantic import BaseModel, Field

from studiogen.core.schemas import (
    MAX_GUIDANCE_SCALE,
    MAX_SEED,
    MIN_GUIDANCE_SCALE,
    GenerationRequest,
    PromptState,
)

# ---------------------------------------------------------------------------
# Fixed contextual fields.
# The service targets a narrow studio-portrait domain, so these are compiled
# in rather than derived from input.
# ---------------------------------------------------------------------------

BACKGROUND_SETTING = "studio background"
DEPTH_OF_FIELD = "shallow"
FOCUS = "sharp"
LENS_FOCAL_LENGTH = "85mm"
SHADOWS = "soft"
COMPOSITION = "balanced"
COLOR_SCHEME = "natural"
MOOD_ATMOSPHERE = "professional"
CONTEXT = "professional photo shoot"

ASPECT_RATIO = "3:4"
STEPS_NUM = 30
DEFAULT_GUIDANCE_SCALE = 5.0

PRIMARY_LOCATION = "center"
PRIMARY_RELATIONSHIP = "main subject"
SECONDARY_LOCATION = "background"
SECONDARY_RELATIONSHIP = "supporting element"


class ObjectDescriptor(BaseModel):
    description: str
    location: str
    relationship: str


class PhotographicCharacteristics(BaseModel):
    camera_angle: str
    depth_of_field: str = DEPTH_OF_FIELD
    focus: str = FOCUS
    lens_focal_length: str = LENS_FOCAL_LENGTH


class LightingSpec(BaseModel):
    conditions: str
    direction: str
    shadows: str = SHADOWS


class Aesthetics(BaseModel):
    composition: str = COMPOSITION
    color_scheme: str = COLOR_SCHEME
    mood_atmosphere: str = MOOD_ATMOSPHERE


class StructuredPrompt(BaseModel):
    """The provider's nested prompt record."""

    short_description: str
    objects: list[ObjectDescriptor]
    background_setting: str = BACKGROUND_SETTING
    style_medium: str
    photographic_characteristics: PhotographicCharacteristics
    lighting: LightingSpec
    aesthetics: Aesthetics = Field(default_factory=Aesthetics)
    context: str = CONTEXT


class UpstreamRequest(BaseModel):
    """Complete body for the provider's generate call."""

    structured_prompt: StructuredPrompt
    aspect_ratio: str = ASPECT_RATIO
    steps_num: int = STEPS_NUM
    guidance_scale: float
    seed: int
    negative_prompt: str | None = None
    image_url: str | None = None

    def to_payload(self) -> dict:
        """Serialise to the JSON-ready dict sent upstream.

        Optional fields that are unset are omitted entirely rather than sent
        as ``null``.
        """
        return self.model_dump(exclude_none=True)


def compose_description(short_description: str, refinement: str | None = None) -> str:
    """Append a non-blank refinement to the description as a second sentence."""
    stripped = (refinement or "").strip()
    if stripped:
        return f"{short_description}. {stripped}"
    return short_description


def describe_objects(objects: list[str]) -> list[ObjectDescriptor]:
    """Tag the first object as the main subject and the rest as supporting.

    Input order is preserved.
    """
    return [
        ObjectDescriptor(
            description=obj,
            location=PRIMARY_LOCATION if index == 0 else SECONDARY_LOCATION,
            relationship=PRIMARY_RELATIONSHIP if index == 0 else SECONDARY_RELATIONSHIP,
        )
        for index, obj in enumerate(objects)
    ]


def clamp_guidance_scale(guidance_scale: float | None) -> float:
    """Clamp into [3, 10], defaulting to 5 when absent.

    Applied even though the validator already bounds the value.
    """
    if guidance_scale is None:
        guidance_scale = DEFAULT_GUIDANCE_SCALE
    return max(MIN_GUIDANCE_SCALE, min(MAX_GUIDANCE_SCALE, guidance_scale))


def resolve_seed(seed: int | None, rng: random.Random | None = None) -> int:
    """Return *seed* unchanged, or draw one uniformly from [0, 2**31 - 1]."""
    if seed is not None:
        return seed
    source = rng if rng is not None else random
    return source.randint(0, MAX_SEED)


def build_structured_prompt(
    prompt_state: PromptState,
    refinement: str | None = None,
) -> StructuredPrompt:
    """Compile the prompt-state portion of the payload."""
    return StructuredPrompt(
        short_description=compose_description(prompt_state.short_description, refinement),
        objects=describe_objects(prompt_state.objects),
        style_medium=prompt_state.style_medium,
        photographic_characteristics=PhotographicCharacteristics(
            camera_angle=prompt_state.camera.angle,
        ),
        lighting=LightingSpec(
            conditions=prompt_state.lighting.type,
            direction=prompt_state.lighting.direction,
        ),
    )


def compile_prompt(
    prompt_state: PromptState,
    refinement: str | None = None,
    negative_prompt: str | None = None,
    guidance_scale: float | None = None,
    seed: int | None = None,
    reference_image_url: str | None = None,
    *,
    rng: random.Random | None = None,
) -> UpstreamRequest:
    """Compile a prompt state and generation settings into an upstream request.

    Args:
        prompt_state: Validated prompt state.
        refinement: Extra sentence appended to the description when
            non-blank.
        negative_prompt: Attached (trimmed) only when non-blank.
        guidance_scale: Clamped into [3, 10]; 5 when ``None``.
        seed: Used as-is when given, otherwise drawn at random.  The
            resolved seed is always present in the result.
        reference_image_url: When given, the request becomes an
            image-to-image refinement of that image.
        rng: Random source for seed drawing.

    Returns:
        The compiled :class:`UpstreamRequest`.
    """
    stripped_negative = (negative_prompt or "").strip()

    return UpstreamRequest(
        structured_prompt=build_structured_prompt(prompt_state, refinement),
        guidance_scale=clamp_guidance_scale(guidance_scale),
        seed=resolve_seed(seed, rng),
        negative_prompt=stripped_negative or None,
        image_url=reference_image_url or None,
    )


def compile_generation_request(
    request: GenerationRequest,
    *,
    rng: random.Random | None = None,
) -> UpstreamRequest:
    """Compile a validated :class:`GenerationRequest`."""
    return compile_prompt(
        request.prompt_state,
        refinement=request.refinement,
        negative_prompt=request.negative_prompt,
        guidance_scale=request.guidance_scale,
        seed=request.seed,
        reference_image_url=request.reference_image_url,
        rng=rng,
    )
