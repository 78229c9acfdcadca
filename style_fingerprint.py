#!/usr/bin/env python3
"""
Reference style fingerprinting.

Reduces a reference image to a compact color summary (average color, hue,
saturation, lightness, contrast, warm/cool balance) that is embedded in the
instructions sent to the image model.
"""

import numpy as np
from PIL import Image
from dataclasses import dataclass, asdict
from typing import NamedTuple, Optional


# =============================================================================
# Constants
# =============================================================================

ALPHA_VISIBILITY_THRESHOLD = 0.05  # Pixels below this opacity are ignored
MAX_SAMPLE_SIDE = 192  # Longer side of the sampled image

# Image size limits (security: prevent decompression bombs)
MAX_IMAGE_PIXELS = 50_000_000  # 50 megapixels
MAX_IMAGE_DIMENSION = 10_000  # 10k pixels per side


class NoVisiblePixels(ValueError):
    """The pixel buffer holds no pixel opaque enough to sample."""


# =============================================================================
# Data Types
# =============================================================================

class PixelSample(NamedTuple):
    """A single RGBA pixel, 8-bit channels."""
    red: int
    green: int
    blue: int
    alpha: int = 255


@dataclass(frozen=True)
class StyleFingerprint:
    """Color summary of a reference image."""
    average_color_hex: str  # 'RRGGBB', uppercase, no leading '#'
    hue_degrees: int  # 0-359, circular mean
    saturation_percent: int  # 0-100
    lightness_percent: int  # 0-100
    contrast_percent: int  # 0-100, lightness span
    warm_ratio_percent: int  # 0-100, share of pixels with red > blue

    @property
    def hex_color(self) -> str:
        return f"#{self.average_color_hex}"

    def to_dict(self) -> dict:
        return asdict(self)

    def describe(self) -> str:
        """Render the fingerprint as prose for terminal output."""
        lines = [
            f"Average color: {self.hex_color}",
            f"Hue: {self.hue_degrees}° | Saturation: {self.saturation_percent}% | "
            f"Lightness: {self.lightness_percent}%",
            f"Contrast: {self.contrast_percent}% | Warm ratio: {self.warm_ratio_percent}%",
        ]
        return "\n".join(lines)


# =============================================================================
# Color Conversion
# =============================================================================

def round_half_up(values):
    """Round halves up (0.5 -> 1, 2.5 -> 3).

    Python's round() and np.round() round halves to even, which would shift
    percentages on exact .5 boundaries.
    """
    return np.floor(np.asarray(values, dtype=np.float64) + 0.5)


def rgb_to_hsl(rgb: np.ndarray) -> tuple:
    """Convert an (N, 3) RGB array (0-255) to hue, saturation, lightness.

    Returns:
        Tuple of (hue, saturation, lightness) arrays. Hue is whole degrees in
        [0, 360); saturation and lightness are in [0, 1].
    """
    rgb_norm = np.asarray(rgb, dtype=np.float64) / 255.0
    r, g, b = rgb_norm[:, 0], rgb_norm[:, 1], rgb_norm[:, 2]

    max_c = rgb_norm.max(axis=1)
    min_c = rgb_norm.min(axis=1)
    delta = max_c - min_c
    chromatic = delta != 0
    safe_delta = np.where(chromatic, delta, 1.0)

    # Six-sector hue; red wins ties, then green
    hue = np.select(
        [max_c == r, max_c == g],
        [np.fmod((g - b) / safe_delta, 6), (b - r) / safe_delta + 2],
        default=(r - g) / safe_delta + 4,
    )
    hue = round_half_up(hue * 60)
    hue = np.where(hue < 0, hue + 360, hue)
    hue = np.where(chromatic, hue, 0.0)

    lightness = (max_c + min_c) / 2
    denom = 1 - np.abs(2 * lightness - 1)
    saturation = np.where(chromatic, delta / np.where(chromatic, denom, 1.0), 0.0)

    return hue, np.clip(saturation, 0, 1), np.clip(lightness, 0, 1)


# =============================================================================
# Pixel Buffers
# =============================================================================

def as_rgba_samples(pixels, width: Optional[int] = None,
                    height: Optional[int] = None) -> np.ndarray:
    """Normalize a pixel buffer to an (N, 4) float array of RGBA samples.

    Accepts raw RGBA bytes, a flat row-major channel sequence, a sequence of
    PixelSample/tuples, or an (h, w, 3|4) array. RGB input is treated as
    fully opaque.

    Raises:
        ValueError: If the buffer shape or channel values are invalid
    """
    if isinstance(pixels, (bytes, bytearray, memoryview)):
        arr = np.frombuffer(pixels, dtype=np.uint8)
    else:
        arr = np.asarray(pixels)

    if width is not None or height is not None:
        if width is None or height is None or width <= 0 or height <= 0:
            raise ValueError(f"Invalid dimensions {width}x{height}")

    if arr.ndim == 1:
        if arr.size % 4 != 0:
            raise ValueError(f"Flat RGBA buffer length {arr.size} is not a multiple of 4")
        arr = arr.reshape(-1, 4)
        if width is not None and arr.shape[0] != width * height:
            raise ValueError(
                f"Buffer holds {arr.shape[0]} pixels, expected {width}x{height}"
            )
    elif arr.ndim == 3:
        if width is not None and arr.shape[:2] != (height, width):
            raise ValueError(
                f"Buffer shape {arr.shape[1]}x{arr.shape[0]} does not match {width}x{height}"
            )
        arr = arr.reshape(-1, arr.shape[2])
    elif arr.ndim == 2:
        if width is not None and arr.shape[0] != width * height:
            raise ValueError(
                f"Buffer holds {arr.shape[0]} pixels, expected {width}x{height}"
            )
    else:
        raise ValueError(f"Unsupported pixel buffer shape {arr.shape}")

    if arr.shape[1] == 3:
        arr = np.column_stack([arr, np.full(arr.shape[0], 255)])
    elif arr.shape[1] != 4:
        raise ValueError(f"Expected 3 or 4 channels, got {arr.shape[1]}")

    arr = arr.astype(np.float64)
    if arr.size and (arr.min() < 0 or arr.max() > 255):
        raise ValueError("Channel values must be in 0-255")

    return arr


# =============================================================================
# Aggregation
# =============================================================================

def compute_fingerprint(pixels, width: Optional[int] = None,
                        height: Optional[int] = None) -> StyleFingerprint:
    """
    Aggregate a pixel buffer into a StyleFingerprint.

    Only pixels with alpha >= ALPHA_VISIBILITY_THRESHOLD contribute. Hue is
    averaged on the circle (mean of cos/sin, then atan2) so that 350° and 10°
    average to 0°, not 180°. The buffer is sampled as given; callers scale
    large images down first (see prepare_pixels).

    Raises:
        NoVisiblePixels: If no pixel passes the opacity threshold
        ValueError: If the buffer is malformed
    """
    samples = as_rgba_samples(pixels, width, height)
    visible = samples[samples[:, 3] / 255.0 >= ALPHA_VISIBILITY_THRESHOLD]
    total = visible.shape[0]

    if total == 0:
        raise NoVisiblePixels("Reference image has no visible pixels")

    rgb = visible[:, :3]
    hue, saturation, lightness = rgb_to_hsl(rgb)

    hue_rad = np.radians(hue)
    mean_hue = np.degrees(np.arctan2(np.sin(hue_rad).sum() / total,
                                     np.cos(hue_rad).sum() / total))
    if mean_hue < 0:
        mean_hue += 360
    # 359.6 rounds up to 360, which is 0 on the circle
    hue_degrees = int(round_half_up(mean_hue)) % 360

    avg_r, avg_g, avg_b = (int(v) for v in round_half_up(rgb.sum(axis=0) / total))
    warm_count = int(np.count_nonzero(rgb[:, 0] > rgb[:, 2]))

    return StyleFingerprint(
        average_color_hex=f"{avg_r:02X}{avg_g:02X}{avg_b:02X}",
        hue_degrees=hue_degrees,
        saturation_percent=int(round_half_up(saturation.sum() / total * 100)),
        lightness_percent=int(round_half_up(lightness.sum() / total * 100)),
        contrast_percent=int(round_half_up((lightness.max() - lightness.min()) * 100)),
        warm_ratio_percent=int(round_half_up(warm_count / total * 100)),
    )


# =============================================================================
# Image Loading
# =============================================================================

def open_image(image_path: str) -> Image.Image:
    """
    Open an image and validate its dimensions.

    Raises:
        FileNotFoundError: If image file doesn't exist
        ValueError: If file is not a valid image or exceeds size limits
    """
    try:
        img = Image.open(image_path)
    except FileNotFoundError:
        raise FileNotFoundError(f"Image not found: {image_path}")
    except Exception as e:
        raise ValueError(f"Could not open image: {e}")

    width, height = img.size
    if width > MAX_IMAGE_DIMENSION or height > MAX_IMAGE_DIMENSION:
        raise ValueError(
            f"Image dimensions {width}x{height} exceed maximum "
            f"{MAX_IMAGE_DIMENSION}x{MAX_IMAGE_DIMENSION}"
        )
    if width * height > MAX_IMAGE_PIXELS:
        raise ValueError(
            f"Image has {width * height:,} pixels, exceeding maximum {MAX_IMAGE_PIXELS:,}"
        )
    return img


def image_dimensions(image_path: str) -> tuple:
    """Return (width, height) of an image without decoding its pixels."""
    return open_image(image_path).size


def sample_size(width: int, height: int, max_side: int = MAX_SAMPLE_SIDE) -> tuple:
    """Size an image is scaled to before sampling. Never upscales."""
    scale = min(1.0, max_side / max(width, height))
    return (max(1, int(round_half_up(width * scale))),
            max(1, int(round_half_up(height * scale))))


def prepare_pixels(image_path: str, max_side: int = MAX_SAMPLE_SIDE) -> np.ndarray:
    """Load an image as an (h, w, 4) uint8 RGBA array, longer side <= max_side."""
    img = open_image(image_path).convert('RGBA')
    target = sample_size(img.width, img.height, max_side)
    if target != img.size:
        img = img.resize(target, Image.Resampling.BILINEAR)
    return np.array(img)


def fingerprint_image(image_path: str) -> StyleFingerprint:
    """Load, downsample and fingerprint a reference image."""
    pixels = prepare_pixels(image_path)
    h, w = pixels.shape[:2]
    return compute_fingerprint(pixels, w, h)


# =============================================================================
# CLI
# =============================================================================

if __name__ == '__main__':
    import argparse
    import sys

    parser = argparse.ArgumentParser(
        description='Compute the style fingerprint of a reference image.'
    )
    parser.add_argument('--input', '-i', required=True, help='Path to the image file')
    args = parser.parse_args()

    try:
        fingerprint = fingerprint_image(args.input)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error analyzing image: {e}", file=sys.stderr)
        sys.exit(1)

    print(fingerprint.describe())
