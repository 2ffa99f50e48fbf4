from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

from ..types import ImagePart


@runtime_checkable
class ImageGenerator(Protocol):
    """An asynchronous service that dresses a person in a garment.

    Implementations return bare base64-encoded images and raise an exception whose
    message is fit for display when the upstream call fails.
    """

    async def generate(
        self, person: ImagePart, garment: ImagePart, description: str
    ) -> Sequence[str]:
        ...
