from __future__ import annotations

import logging
import os
from typing import Callable

from .errors import DecodeError, FormatError
from .normalizer import FileHandle, normalize
from .types import NormalizedImage

logger = logging.getLogger(__name__)

ImageCallback = Callable[[NormalizedImage | None], None]


def _display_name(handle: FileHandle) -> str | None:
    if isinstance(handle, (str, os.PathLike)):
        return os.path.basename(os.fspath(handle))
    name = getattr(handle, "name", None)
    return os.path.basename(name) if isinstance(name, str) else None


class ImageUploader:
    """One file-selection control feeding a single image slot.

    A failed selection clears the slot through ``on_image(None)``; the failure text is
    kept in :attr:`error` for display only.
    """

    def __init__(self, title: str, on_image: ImageCallback) -> None:
        self.title = title
        self._on_image = on_image
        self.preview: str | None = None
        self.file_name: str | None = None
        self.error: str | None = None

    async def select(self, handle: FileHandle) -> NormalizedImage | None:
        try:
            image = await normalize(handle)
        except (DecodeError, FormatError) as exc:
            logger.error("Error processing file for %s: %s", self.title, exc)
            self.preview = None
            self.file_name = None
            self.error = str(exc)
            self._on_image(None)
            return None

        self.preview = image.preview_handle
        self.file_name = _display_name(handle)
        self.error = None
        self._on_image(image)
        return image

    def clear(self) -> None:
        self.preview = None
        self.file_name = None
        self.error = None
        self._on_image(None)
