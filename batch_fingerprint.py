#!/usr/bin/env python3
"""Batch fingerprint reference images and classify their aspect ratios."""

import argparse
import json
import sys
import time
from pathlib import Path

from aspect_ratio import classify_aspect_ratio
from style_fingerprint import fingerprint_image, image_dimensions


def find_images(directory: Path) -> list[Path]:
    """Find all image files in directory."""
    extensions = {'.jpg', '.jpeg', '.png', '.webp'}
    images = set()
    for ext in extensions:
        images.update(directory.glob(f'*{ext}'))
        images.update(directory.glob(f'*{ext.upper()}'))
    return sorted(images)


def main(argv=None):
    parser = argparse.ArgumentParser(
        description='Batch fingerprint reference images.'
    )
    parser.add_argument(
        '--input', '-i',
        required=True,
        help='Directory containing images to fingerprint'
    )
    parser.add_argument(
        '--output', '-o',
        help='Write fingerprints as JSON to this file'
    )

    args = parser.parse_args(argv)
    input_dir = Path(args.input)

    # Validate input directory
    if not input_dir.is_dir():
        print(f"Error: Input directory not found: {input_dir}", file=sys.stderr)
        sys.exit(2)

    images = find_images(input_dir)
    if not images:
        print(f"No images found in {input_dir}", file=sys.stderr)
        sys.exit(2)

    total = len(images)
    results = {}
    failed = []

    batch_start = time.perf_counter()

    for i, image_path in enumerate(images, 1):
        try:
            fingerprint = fingerprint_image(str(image_path))
            aspect_ratio = classify_aspect_ratio(*image_dimensions(str(image_path)))
        except Exception as e:
            error_msg = f"{type(e).__name__}: {e}"
            print(f"[{i}/{total}] {image_path.name} → ERROR: {error_msg}", file=sys.stderr)
            failed.append((image_path.name, error_msg))
            continue

        results[image_path.name] = dict(fingerprint.to_dict(), aspect_ratio=aspect_ratio.value)
        print(f"[{i}/{total}] {image_path.name} → {fingerprint.hex_color} "
              f"hue {fingerprint.hue_degrees}° warm {fingerprint.warm_ratio_percent}% "
              f"({aspect_ratio.value})")

    batch_elapsed = time.perf_counter() - batch_start

    if args.output:
        Path(args.output).write_text(json.dumps(results, indent=2))

    # Summary
    print()
    print(f"Completed: {len(results)}/{total} succeeded in {batch_elapsed:.2f}s")
    if failed:
        print(f"Failed ({len(failed)}):")
        for name, error in failed:
            print(f"  - {name}: {error}")
        sys.exit(1)


if __name__ == '__main__':
    main()
