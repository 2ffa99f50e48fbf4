from __future__ import annotations

import asyncio
import base64
import io
from pathlib import Path
from typing import List, Sequence

import pytest
from PIL import Image

from tryon_studio.types import ImagePart, NormalizedImage


def make_image_bytes(fmt: str = "PNG", size: tuple[int, int] = (4, 3), color=(200, 10, 10)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


def make_normalized(media_type: str = "image/png", size: tuple[int, int] = (4, 3)) -> NormalizedImage:
    payload = base64.b64encode(make_image_bytes(size=size)).decode("ascii")
    return NormalizedImage(
        payload=payload,
        media_type=media_type,
        preview_handle=f"data:{media_type};base64,{payload}",
        width=size[0],
        height=size[1],
    )


class StubGenerator:
    """Records calls and either returns ``results`` or raises ``error``."""

    def __init__(
        self,
        results: Sequence[str] = (),
        error: BaseException | None = None,
        gate: asyncio.Event | None = None,
    ) -> None:
        self.results = list(results)
        self.error = error
        self.gate = gate
        self.calls: List[tuple[ImagePart, ImagePart, str]] = []

    async def generate(self, person: ImagePart, garment: ImagePart, description: str) -> List[str]:
        self.calls.append((person, garment, description))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return list(self.results)


@pytest.fixture
def png_file(tmp_path: Path) -> Path:
    path = tmp_path / "person.png"
    path.write_bytes(make_image_bytes("PNG", size=(8, 6)))
    return path


@pytest.fixture
def jpeg_file(tmp_path: Path) -> Path:
    path = tmp_path / "garment.jpg"
    path.write_bytes(make_image_bytes("JPEG", size=(5, 7)))
    return path
