from __future__ import annotations

import base64
import binascii
from pathlib import Path
from typing import Iterable, List

from .normalizer import DEFAULT_MEDIA_TYPE, sniff_media_type
from .types import WorkflowState

_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/bmp": ".bmp",
    "image/tiff": ".tiff",
}


def result_media_type(image_b64: str, default: str = "image/png") -> str:
    """Sniff the encoding of a bare base64 result, falling back to ``default``."""
    try:
        head = base64.b64decode(image_b64[:64])
    except (binascii.Error, ValueError):
        return default
    media_type = sniff_media_type(head)
    return default if media_type == DEFAULT_MEDIA_TYPE else media_type


def to_data_url(image_b64: str, media_type: str = "image/png") -> str:
    """Prefix a bare base64 result so it can be rendered directly."""
    return f"data:{media_type};base64,{image_b64}"


def render_results(state: WorkflowState) -> List[str]:
    return [to_data_url(item, result_media_type(item)) for item in state.results]


def save_results(results: Iterable[str], directory: Path, stem: str = "tryon") -> List[Path]:
    """Write decoded results as ``<stem>-<n>.<ext>`` files and return their paths."""
    directory.mkdir(parents=True, exist_ok=True)
    saved: List[Path] = []
    for index, image_b64 in enumerate(results, start=1):
        try:
            image_bytes = base64.b64decode(image_b64)
        except (binascii.Error, ValueError) as exc:
            raise RuntimeError(f"Result {index} is not valid base64 data.") from exc
        extension = _EXTENSIONS.get(sniff_media_type(image_bytes), ".png")
        path = directory / f"{stem}-{index}{extension}"
        path.write_bytes(image_bytes)
        saved.append(path)
    return saved
