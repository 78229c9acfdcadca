#!/usr/bin/env python3
"""
Assemble a generation request from a structural image and a style reference.

Fingerprints the reference, buckets the primary image's aspect ratio and
prints the instruction text. With --output the full request payload is
written as JSON for whatever client makes the model call.
"""

import argparse
import base64
import json
import mimetypes
import sys
from pathlib import Path

from aspect_ratio import classify_aspect_ratio
from generation_request import (
    ImageSize, build_generation_request, encode_data_url, validate_upload,
)
from instructions import DEFAULT_BLEND_WEIGHT, EnhanceParameters, RenderMode
from style_fingerprint import fingerprint_image, image_dimensions


def read_data_url(image_path: Path) -> str:
    """Read an image file as a base64 data URL after upload validation."""
    mime_type, _ = mimetypes.guess_type(image_path.name)
    data = image_path.read_bytes()
    validate_upload(mime_type or '', len(data))
    return encode_data_url(mime_type, base64.b64encode(data).decode('ascii'))


def percent(value: str) -> int:
    number = int(value)
    if not 0 <= number <= 100:
        raise argparse.ArgumentTypeError(f"{value} is not in 0-100")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Build a style-locked image generation request.'
    )
    parser.add_argument(
        '--primary', '-p',
        required=True,
        help='Structural image (floor plan, lineart or image to enhance)'
    )
    parser.add_argument(
        '--reference', '-r',
        help='Style reference image (not used in enhance mode)'
    )
    parser.add_argument(
        '--mode', '-m',
        choices=[m.value for m in RenderMode],
        default=RenderMode.SPATIAL_SYNTHESIS.value,
        help='Render mode'
    )
    parser.add_argument('--blend', type=percent, default=DEFAULT_BLEND_WEIGHT,
                        help='Blend weight percentage (default 100)')
    parser.add_argument('--size', choices=[s.value for s in ImageSize],
                        default=ImageSize.K1.value, help='Output resolution')

    defaults = EnhanceParameters()
    parser.add_argument('--texture', type=percent, default=defaults.texture)
    parser.add_argument('--smoothing', type=percent, default=defaults.smoothing)
    parser.add_argument('--detail', type=percent, default=defaults.detail)
    parser.add_argument('--light', type=percent, default=defaults.light)

    parser.add_argument(
        '--output', '-o',
        help='Write the request payload as JSON to this path'
    )
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    mode = RenderMode(args.mode)
    primary_path = Path(args.primary)

    if mode is not RenderMode.ENHANCE and not args.reference:
        print(f"Error: --reference is required in {mode.value} mode", file=sys.stderr)
        sys.exit(2)

    try:
        width, height = image_dimensions(str(primary_path))
        aspect_ratio = classify_aspect_ratio(width, height)

        fingerprint = None
        reference_url = None
        if mode is not RenderMode.ENHANCE:
            reference_path = Path(args.reference)
            fingerprint = fingerprint_image(str(reference_path))
            reference_url = read_data_url(reference_path)

        request = build_generation_request(
            mode,
            read_data_url(primary_path),
            reference_url,
            blend_weight=args.blend,
            fingerprint=fingerprint,
            enhance_params=EnhanceParameters(
                texture=args.texture, smoothing=args.smoothing,
                detail=args.detail, light=args.light,
            ),
            aspect_ratio=aspect_ratio,
            image_size=ImageSize(args.size),
        )
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Mode: {mode.value} | Aspect ratio: {aspect_ratio.value} ({width}x{height})")
    if fingerprint is not None:
        print(fingerprint.describe())
    print()
    print(request.instruction)

    if args.output:
        output_path = Path(args.output)
        try:
            output_path.write_text(json.dumps(request.to_payload(), indent=2))
            print(f"\nWrote: {output_path}")
        except OSError as e:
            print(f"Error writing output: {e}", file=sys.stderr)
            sys.exit(1)


if __name__ == '__main__':
    main()
