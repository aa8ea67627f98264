"""Option catalogs offered by the prompt-state form.

These lists populate the form's pickers and are served by ``GET /api/config``.
They are suggestions only: the validator accepts any string within the
field's length bound.
"""

from __future__ import annotations

CAMERA_ANGLES: list[dict[str, str]] = [
    {"label": "Wide", "value": "wide_angle"},
    {"label": "Low", "value": "low_angle"},
    {"label": "Upper", "value": "high_angle"},
    {"label": "POV", "value": "pov"},
    {"label": "Eye Level", "value": "eye_level"},
]

CAMERA_VIEWS: list[dict[str, str]] = [
    {"label": "Close-up", "value": "close_up"},
    {"label": "Medium", "value": "medium_shot"},
    {"label": "Full Body", "value": "full_body"},
    {"label": "Wide", "value": "wide_shot"},
]

STYLE_MEDIUMS: list[dict[str, str]] = [
    {"label": "Fashion", "value": "fashion_photography"},
    {"label": "Cinematic", "value": "cinematic"},
    {"label": "B&W", "value": "black_and_white"},
    {"label": "Portrait", "value": "portrait"},
    {"label": "Editorial", "value": "editorial"},
]

LIGHTING_TYPES: list[dict[str, str]] = [
    {"label": "Soft", "value": "softbox"},
    {"label": "Hard", "value": "hard_light"},
    {"label": "Natural", "value": "natural_light"},
    {"label": "Neon", "value": "neon_lights"},
    {"label": "Studio", "value": "studio_lighting"},
]

LIGHTING_DIRECTIONS: list[dict[str, str]] = [
    {"label": "Front", "value": "front"},
    {"label": "Side", "value": "side"},
    {"label": "Back", "value": "back"},
    {"label": "Rim", "value": "rim"},
]

# Starting point for a fresh form.
DEFAULT_PROMPT_STATE: dict = {
    "short_description": "A model posing in a studio",
    "objects": ["woman", "dress"],
    "camera": {"angle": "eye_level", "view": "medium_shot"},
    "lighting": {"type": "studio_lighting", "direction": "front"},
    "style_medium": "photograph",
}


def option_catalog() -> dict[str, list[dict[str, str]]]:
    """Return every picker's options keyed by prompt-state field."""
    return {
        "camera_angles": CAMERA_ANGLES,
        "camera_views": CAMERA_VIEWS,
        "style_mediums": STYLE_MEDIUMS,
        "lighting_types": LIGHTING_TYPES,
        "lighting_directions": LIGHTING_DIRECTIONS,
    }
