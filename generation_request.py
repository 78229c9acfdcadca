#!/usr/bin/env python3
"""
Request assembly for the external image model.

Builds the content parts (inline images plus instruction text) and image
config for one generation call, and pulls the generated image back out of a
response. Nothing here performs I/O; the call itself is made by the caller.
"""

import os
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from aspect_ratio import AspectRatio
from instructions import (
    DEFAULT_BLEND_WEIGHT, EnhanceParameters, RenderMode, assemble_instruction,
)
from style_fingerprint import StyleFingerprint


# =============================================================================
# Constants
# =============================================================================

GENERATION_MODEL = 'gemini-3-pro-image-preview'
API_KEY_ENV_VAR = 'API_KEY'
API_KEY_MIN_LENGTH = 10
MAX_UPLOAD_SIZE_BYTES = 15 * 1024 * 1024
DEFAULT_MIME_TYPE = 'image/png'

DATA_URL_PATTERN = re.compile(r'^data:(.+);base64,(.+)\Z')
DATA_URL_HEADER_PATTERN = re.compile(r'^data:([^;]+);base64$', re.IGNORECASE)


class InvalidImageData(ValueError):
    """A data URL could not be parsed."""


class UploadRejected(ValueError):
    """An upload is not an image or is too large."""


class NoImageReturned(RuntimeError):
    """The model response carried no inline image."""


class ImageSize(Enum):
    """Output resolution tier."""
    K1 = '1K'
    K2 = '2K'
    K4 = '4K'


# =============================================================================
# Credentials
# =============================================================================

def resolve_api_key(manual_key: str, env_key: Optional[str] = None) -> str:
    """Prefer a manually entered key; otherwise use the environment key.

    When env_key is None the API_KEY environment variable is read.
    """
    manual = (manual_key or '').strip()
    if manual:
        return manual
    if env_key is None:
        env_key = os.environ.get(API_KEY_ENV_VAR)
    return (env_key or '').strip()


def is_usable_key(api_key: str) -> bool:
    return len(api_key or '') >= API_KEY_MIN_LENGTH


# =============================================================================
# Image Data
# =============================================================================

@dataclass(frozen=True)
class InlineImageData:
    """Base64 payload with its MIME type."""
    data: str
    mime_type: str

    def to_part(self) -> dict:
        return {'inlineData': {'data': self.data, 'mimeType': self.mime_type}}

    def to_data_url(self) -> str:
        return encode_data_url(self.mime_type, self.data)


def encode_data_url(mime_type: str, data: str) -> str:
    return f"data:{mime_type};base64,{data}"


def extract_inline_image_data(data_url: str,
                              fallback_mime_type: str = DEFAULT_MIME_TYPE) -> InlineImageData:
    """Split a data URL leniently; a malformed header yields the fallback MIME type."""
    pieces = data_url.split(',')
    match = DATA_URL_HEADER_PATTERN.match(pieces[0])
    return InlineImageData(
        data=pieces[1] if len(pieces) > 1 else '',
        mime_type=match.group(1) if match else fallback_mime_type,
    )


def parse_data_url(data_url: str) -> InlineImageData:
    """
    Parse a base64 data URL strictly.

    Raises:
        InvalidImageData: If the URL is not 'data:<mime>;base64,<data>'
    """
    match = DATA_URL_PATTERN.match(data_url)
    if not match:
        raise InvalidImageData("Invalid image data URL, please upload again")
    return InlineImageData(data=match.group(2), mime_type=match.group(1))


def validate_upload(mime_type: str, size_bytes: int) -> None:
    """
    Reject non-image files and files over MAX_UPLOAD_SIZE_BYTES.

    Raises:
        UploadRejected: With a message suitable for showing to the user
    """
    if not (mime_type or '').startswith('image/'):
        raise UploadRejected("Only image files can be uploaded")
    if size_bytes > MAX_UPLOAD_SIZE_BYTES:
        raise UploadRejected(
            f"Image is {size_bytes:,} bytes, exceeding maximum {MAX_UPLOAD_SIZE_BYTES:,}"
        )


# =============================================================================
# Requests
# =============================================================================

@dataclass
class GenerationRequest:
    """One call to the image model."""
    parts: list
    aspect_ratio: AspectRatio = AspectRatio.SQUARE
    image_size: ImageSize = ImageSize.K1
    model: str = GENERATION_MODEL
    mode: RenderMode = RenderMode.SPATIAL_SYNTHESIS
    instruction: str = field(default='', repr=False)

    def to_payload(self) -> dict:
        return {
            'model': self.model,
            'contents': {'parts': self.parts},
            'config': {
                'imageConfig': {
                    'aspectRatio': self.aspect_ratio.value,
                    'imageSize': self.image_size.value,
                },
            },
        }


def build_generation_request(mode,
                             primary_image: str,
                             reference_image: Optional[str] = None,
                             blend_weight: int = DEFAULT_BLEND_WEIGHT,
                             fingerprint: Optional[StyleFingerprint] = None,
                             enhance_params: Optional[EnhanceParameters] = None,
                             aspect_ratio: AspectRatio = AspectRatio.SQUARE,
                             image_size: ImageSize = ImageSize.K1) -> GenerationRequest:
    """
    Assemble the parts for one generation call.

    Image 1 is the primary (structural) image; Image 2 is the style
    reference, omitted in enhance mode. Images are data URLs.

    Raises:
        ValueError: If a non-enhance mode has no reference image
        InvalidImageData: If an image is not a valid data URL
    """
    mode = RenderMode(mode)
    parts = [parse_data_url(primary_image).to_part()]

    if mode is not RenderMode.ENHANCE:
        if not reference_image:
            raise ValueError(f"Mode '{mode.value}' requires a reference image")
        parts.append(parse_data_url(reference_image).to_part())

    instruction = assemble_instruction(mode, blend_weight, fingerprint, enhance_params)
    parts.append({'text': instruction})

    return GenerationRequest(
        parts=parts,
        aspect_ratio=AspectRatio(aspect_ratio),
        image_size=ImageSize(image_size),
        mode=mode,
        instruction=instruction,
    )


def extract_result_image(response: dict) -> str:
    """
    Return the first inline image of the first candidate as a data URL.

    Raises:
        NoImageReturned: If the response holds no image data
    """
    candidates = response.get('candidates') or []
    parts = []
    if candidates:
        parts = ((candidates[0] or {}).get('content') or {}).get('parts') or []

    # Only the first part carrying inline data counts
    inline = next((p['inlineData'] for p in parts if p.get('inlineData') is not None), None)
    if inline and inline.get('data'):
        return encode_data_url(inline.get('mimeType') or DEFAULT_MIME_TYPE, inline['data'])

    raise NoImageReturned("Model returned no image, adjust parameters and retry")
