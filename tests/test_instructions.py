"""
Unit tests for instruction assembly.

Tests mode dispatch, the plan protocol template and determinism.
"""

import numpy as np
import pytest

from instructions import (
    DEFAULT_ENHANCE_PARAMETERS, LITERAL_INTERPRETATION, TELEMETRY_UNAVAILABLE,
    EnhanceParameters, RenderMode,
    assemble_instruction, build_plan_protocol, style_capture_target,
)
from style_fingerprint import StyleFingerprint


@pytest.fixture
def fingerprint():
    return StyleFingerprint(
        average_color_hex='3A7F2C',
        hue_degrees=107,
        saturation_percent=48,
        lightness_percent=33,
        contrast_percent=71,
        warm_ratio_percent=12,
    )


class TestRenderMode:
    """Test mode parsing."""

    @pytest.mark.parametrize("value,expected", [
        ('plan', RenderMode.PLAN_STYLE_LOCK),
        ('planStyleLock', RenderMode.PLAN_STYLE_LOCK),
        ('plan_style_lock', RenderMode.PLAN_STYLE_LOCK),
        ('spatial', RenderMode.SPATIAL_SYNTHESIS),
        ('spatialSynthesis', RenderMode.SPATIAL_SYNTHESIS),
        ('enhance', RenderMode.ENHANCE),
        (RenderMode.ENHANCE, RenderMode.ENHANCE),
    ])
    def test_parse(self, value, expected):
        assert RenderMode(value) is expected

    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            assemble_instruction('sketch', 50)


class TestStyleCaptureTarget:
    """Target = clamp(round(w * 0.92 + 7), 75, 99)."""

    @pytest.mark.parametrize("weight,expected", [
        (0, 75), (50, 75), (74, 75), (75, 76), (80, 81), (99, 98), (100, 99),
    ])
    def test_target(self, weight, expected):
        assert style_capture_target(weight) == expected

    def test_accepts_numpy_integers(self):
        assert style_capture_target(np.int64(100)) == 99
        assert style_capture_target(np.uint8(80)) == 81
        assert EnhanceParameters(texture=np.int32(80)).texture == 80

    def test_rejects_bool(self):
        with pytest.raises(ValueError):
            style_capture_target(True)

    @pytest.mark.parametrize("weight", [-1, 101, 50.5, None])
    def test_rejects_invalid_weight(self, weight):
        with pytest.raises(ValueError):
            style_capture_target(weight)


class TestEnhance:
    """Test enhance-mode instruction."""

    def test_embeds_sliders_but_not_smoothing(self):
        text = assemble_instruction(
            'enhance', None, None,
            EnhanceParameters(texture=80, smoothing=50, detail=60, light=40),
        )
        assert 'texture: 80%' in text
        assert 'detail: 60%' in text
        assert 'light: 40%' in text
        assert '50' not in text
        assert 'smoothing' not in text

    def test_accepts_mapping(self):
        text = assemble_instruction(
            RenderMode.ENHANCE, 0, None,
            {'texture': 80, 'smoothing': 50, 'detail': 60, 'light': 40},
        )
        assert text.startswith('[PROTOCOL: HD_REMASTER]')
        assert 'texture: 80%' in text

    def test_defaults(self):
        text = assemble_instruction('enhance')
        assert text == (
            '[PROTOCOL: HD_REMASTER] texture: 99%, detail: 90%, light: 70%. '
            'Enhance quality while preserving architecture lines.'
        )

    def test_ignores_fingerprint_and_blend(self, fingerprint):
        assert assemble_instruction('enhance', 10, fingerprint) == assemble_instruction('enhance', 90)

    def test_default_parameters(self):
        """Module-level defaults are built and validated at import."""
        assert DEFAULT_ENHANCE_PARAMETERS == EnhanceParameters(
            texture=99, smoothing=10, detail=90, light=70,
        )

    def test_rejects_out_of_range_slider(self):
        with pytest.raises(ValueError):
            EnhanceParameters(texture=101)


class TestSpatial:
    """Test spatial-synthesis instruction."""

    def test_embeds_blend_weight(self):
        text = assemble_instruction('spatial', 63)
        assert text == (
            '[PROTOCOL: SPATIAL_SYNTHESIS] Apply style/materials from Image 2 to the '
            'floor plan/CAD structure in Image 1. Blend weight: 63%.'
        )

    def test_ignores_fingerprint(self, fingerprint):
        assert assemble_instruction('spatial', 63, fingerprint) == assemble_instruction('spatial', 63)

    def test_rejects_invalid_weight(self):
        with pytest.raises(ValueError):
            assemble_instruction('spatial', 150)


class TestPlanStyleLock:
    """Test the plan style-lock protocol."""

    def test_fallback_telemetry_and_max_target(self):
        text = assemble_instruction('planStyleLock', 100, None, None)
        assert TELEMETRY_UNAVAILABLE in text
        assert 'Style adherence target: 99% (derived from blend weight 100%)' in text

    def test_fingerprint_embedded_and_min_target(self, fingerprint):
        text = assemble_instruction('planStyleLock', 0, fingerprint, None)
        assert 'Style adherence target: 75% (derived from blend weight 0%)' in text
        assert TELEMETRY_UNAVAILABLE not in text
        assert (
            'Reference telemetry -> avg color: #3A7F2C, hue: 107°, saturation: 48%, '
            'lightness: 33%, contrast: 71%, warm ratio: 12%.'
        ) in text

    def test_clause_order(self, fingerprint):
        text = build_plan_protocol(80, fingerprint)
        markers = [
            '[PROTOCOL: PLAN_STYLE_LOCK_V3]',
            'Task:',
            'Instruction priority (strict order):',
            '1) Pixel geometry lock from Image 1. 2) Colorimetry lock from Image 2. 3) Detail enhancement.',
            'Hard geometry constraints:',
            'without translation, warping',
            'No added structures, no removed structures',
            'Hard style constraints from Image 2 only:',
            'Never borrow style cues from previous outputs, history thumbnails',
            'Reference telemetry ->',
            'Style adherence target: 81%',
            'Stability requirement for repeated runs with identical inputs:',
            'Low-variance rendering',
            'Rendering guidance:',
        ]
        positions = [text.index(m) for m in markers]
        assert positions == sorted(positions)
        assert text.startswith(markers[0])
        assert text.endswith('minimal texture noise artifacts.')

    def test_literal_interpretation_suffix(self):
        text = assemble_instruction('plan', 80)
        assert text == f"{build_plan_protocol(80, None)} {LITERAL_INTERPRETATION}"

    def test_deterministic(self, fingerprint):
        first = assemble_instruction('plan', 42, fingerprint)
        second = assemble_instruction('plan', 42, fingerprint)
        assert first == second
        assert first.encode('utf-8') == second.encode('utf-8')

    def test_rejects_invalid_weight(self):
        with pytest.raises(ValueError):
            assemble_instruction('plan', -3)
