#!/usr/bin/env python3
"""
Deterministic instruction assembly.

Combines a render mode, a blend weight and an optional style fingerprint
into the text sent alongside the images. Identical inputs always produce
byte-identical text: no randomness, timestamps or locale formatting.
"""

import numbers
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional, Union

from style_fingerprint import StyleFingerprint


# =============================================================================
# Constants
# =============================================================================

STYLE_CAPTURE_MIN = 75
STYLE_CAPTURE_MAX = 99
DEFAULT_BLEND_WEIGHT = 100

PLAN_PROTOCOL_TAG = '[PROTOCOL: PLAN_STYLE_LOCK_V3]'
SPATIAL_PROTOCOL_TAG = '[PROTOCOL: SPATIAL_SYNTHESIS]'
ENHANCE_PROTOCOL_TAG = '[PROTOCOL: HD_REMASTER]'

TELEMETRY_UNAVAILABLE = (
    'Reference telemetry unavailable: still prioritize strict colorimetry lock to Image 2.'
)
LITERAL_INTERPRETATION = (
    'Interpret the above priorities literally and strictly for deterministic style consistency.'
)


# =============================================================================
# Parameters
# =============================================================================

class RenderMode(Enum):
    """Which instruction branch runs."""
    PLAN_STYLE_LOCK = 'plan'
    SPATIAL_SYNTHESIS = 'spatial'
    ENHANCE = 'enhance'

    @classmethod
    def _missing_(cls, value):
        # Accept 'planStyleLock', 'plan_style_lock', 'PLAN_STYLE_LOCK', ...
        if isinstance(value, str):
            key = value.replace('_', '').replace('-', '').lower()
            for member in cls:
                if key in (member.value, member.name.replace('_', '').lower()):
                    return member
        return None


def _check_percent(name: str, value) -> None:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise ValueError(f"{name} must be an integer percentage, got {value!r}")
    if not 0 <= value <= 100:
        raise ValueError(f"{name} must be in 0-100, got {value}")


@dataclass(frozen=True)
class EnhanceParameters:
    """Quality sliders for enhance mode, each 0-100.

    smoothing is carried for interface compatibility but no instruction
    template reads it yet.
    """
    texture: int = 99
    smoothing: int = 10
    detail: int = 90
    light: int = 70

    def __post_init__(self):
        for name in ('texture', 'smoothing', 'detail', 'light'):
            _check_percent(name, getattr(self, name))


DEFAULT_ENHANCE_PARAMETERS = EnhanceParameters()


# =============================================================================
# Templates
# =============================================================================

def style_capture_target(blend_weight: int) -> int:
    """Adherence target derived from blend weight, clamped to 75-99."""
    _check_percent('blend_weight', blend_weight)
    # Exact integer form of floor(blend_weight * 0.92 + 7 + 0.5)
    raw = (int(blend_weight) * 92 + 750) // 100
    return min(STYLE_CAPTURE_MAX, max(STYLE_CAPTURE_MIN, raw))


def telemetry_sentence(fingerprint: Optional[StyleFingerprint]) -> str:
    if fingerprint is None:
        return TELEMETRY_UNAVAILABLE
    return (
        f"Reference telemetry -> avg color: {fingerprint.hex_color}, "
        f"hue: {fingerprint.hue_degrees}°, "
        f"saturation: {fingerprint.saturation_percent}%, "
        f"lightness: {fingerprint.lightness_percent}%, "
        f"contrast: {fingerprint.contrast_percent}%, "
        f"warm ratio: {fingerprint.warm_ratio_percent}%."
    )


def build_plan_protocol(blend_weight: int, fingerprint: Optional[StyleFingerprint]) -> str:
    """
    Plan style-lock protocol: header, task, priority order, geometry
    constraints, style-source constraints, telemetry, adherence target,
    stability requirement, rendering guidance.
    """
    target = style_capture_target(blend_weight)

    clauses = [
        PLAN_PROTOCOL_TAG,
        'Task: Convert Image 1 architectural lineart/floor plan into a 3D rendered '
        'visualization while preserving exact geometry from Image 1.',
        'Instruction priority (strict order):',
        '1) Pixel geometry lock from Image 1. 2) Colorimetry lock from Image 2. '
        '3) Detail enhancement.',
        'Hard geometry constraints:',
        '- Pixel-level geometry lock: keep every wall edge, opening boundary, corner '
        'position, and spatial proportion aligned to Image 1 without translation, '
        'warping, redesign, or camera-angle drift.',
        '- Keep architectural contour readability and line hierarchy intact. No added '
        'structures, no removed structures, no layout hallucination.',
        'Hard style constraints from Image 2 only:',
        '- Use Image 2 as the sole style authority. Never borrow style cues from '
        'previous outputs, history thumbnails, or latent memory.',
        '- Match dominant palette family, hue distribution, color gamut boundary, tonal '
        'contrast curve, shadow softness, light direction, saturation envelope, and '
        'warm/cool balance.',
        '- Keep atmosphere density and brightness interval consistent with Image 2. '
        'Avoid random color temperature drift.',
        telemetry_sentence(fingerprint),
        f"- Style adherence target: {target}% (derived from blend weight {blend_weight}%).",
        'Stability requirement for repeated runs with identical inputs:',
        '- Low-variance rendering: outputs must remain within a tight tolerance around '
        'Image 2 hue/gamut/saturation/light-direction signature.',
        '- If uncertain, prefer conservative reproduction of Image 2 colorimetry; do not '
        'invent new tones or cinematic grading.',
        'Rendering guidance:',
        '- Maintain clean architectural visualization quality with stable surfaces and '
        'minimal texture noise artifacts.',
    ]
    return ' '.join(clauses)


def build_spatial_instruction(blend_weight: int) -> str:
    _check_percent('blend_weight', blend_weight)
    return (
        f"{SPATIAL_PROTOCOL_TAG} Apply style/materials from Image 2 to the floor plan/CAD "
        f"structure in Image 1. Blend weight: {blend_weight}%."
    )


def build_enhance_instruction(params: EnhanceParameters) -> str:
    return (
        f"{ENHANCE_PROTOCOL_TAG} texture: {params.texture}%, detail: {params.detail}%, "
        f"light: {params.light}%. Enhance quality while preserving architecture lines."
    )


# =============================================================================
# Assembly
# =============================================================================

def assemble_instruction(mode: Union[RenderMode, str],
                         blend_weight: Optional[int] = DEFAULT_BLEND_WEIGHT,
                         fingerprint: Optional[StyleFingerprint] = None,
                         enhance_params: Union[EnhanceParameters, Mapping, None] = None) -> str:
    """
    Assemble the instruction text for a render mode.

    enhance ignores blend weight and fingerprint; spatial ignores the
    fingerprint; plan falls back to a fixed telemetry sentence when no
    fingerprint is given.

    Raises:
        ValueError: On an unknown mode or out-of-range blend weight/sliders
    """
    mode = RenderMode(mode)

    if mode is RenderMode.ENHANCE:
        if enhance_params is None:
            enhance_params = DEFAULT_ENHANCE_PARAMETERS
        elif isinstance(enhance_params, Mapping):
            enhance_params = EnhanceParameters(**enhance_params)
        return build_enhance_instruction(enhance_params)

    if mode is RenderMode.SPATIAL_SYNTHESIS:
        return build_spatial_instruction(blend_weight)

    return f"{build_plan_protocol(blend_weight, fingerprint)} {LITERAL_INTERPRETATION}"
