#!/usr/bin/env python3
"""
Canonical aspect ratio buckets for generation sizing.

Image dimensions are bucketed into one of five labels the image model
accepts; the bands are coarse and deliberately asymmetric.
"""

from enum import Enum


class AspectRatio(Enum):
    """Canonical aspect ratio labels."""
    SQUARE = '1:1'
    LANDSCAPE = '4:3'
    PORTRAIT = '3:4'
    WIDE = '16:9'
    TALL = '9:16'

    @property
    def css(self) -> str:
        """CSS aspect-ratio form, e.g. '16 / 9'."""
        return self.value.replace(':', ' / ')

    def __str__(self) -> str:
        return self.value


# (predicate, label) checked in order; first match wins
RATIO_BANDS = (
    (lambda r: r > 1.5, AspectRatio.WIDE),
    (lambda r: r < 0.6, AspectRatio.TALL),
    (lambda r: r > 1.1, AspectRatio.LANDSCAPE),
    (lambda r: r < 0.9, AspectRatio.PORTRAIT),
)


def classify_aspect_ratio(width: float, height: float) -> AspectRatio:
    """
    Bucket width/height into a canonical ratio.

    Thresholds are strict: a ratio of exactly 1.1 is still square.

    Raises:
        ValueError: If either dimension is not positive
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Dimensions must be positive, got {width}x{height}")

    ratio = width / height
    for matches, label in RATIO_BANDS:
        if matches(ratio):
            return label
    return AspectRatio.SQUARE
