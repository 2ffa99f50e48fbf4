from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Any, Callable, List

from .clients.base import ImageGenerator
from .errors import GenerationError, ValidationError
from .types import NormalizedImage, WorkflowPhase, WorkflowState

logger = logging.getLogger(__name__)

MISSING_IMAGES_MESSAGE = "Please upload both a person and a clothing item."
UNKNOWN_ERROR_MESSAGE = "An unknown error occurred."
CANCELLED_MESSAGE = "Generation was cancelled."

StateListener = Callable[[WorkflowState], None]


class GenerationOrchestrator:
    """
    Own the try-on workflow state and drive one generation at a time.

    State is held as an immutable :class:`WorkflowState` that is swapped wholesale on
    every change, so observers only ever see complete snapshots. Triggers received
    while a generation is in flight are ignored.
    """

    def __init__(self, generator: ImageGenerator) -> None:
        self._generator = generator
        self._state = WorkflowState()
        self._listeners: List[StateListener] = []

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def phase(self) -> WorkflowPhase:
        return self._state.phase

    @property
    def can_generate(self) -> bool:
        return self._state.can_generate

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register ``listener`` for state snapshots; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _update(self, **changes: Any) -> None:
        self._state = dataclasses.replace(self._state, **changes)
        for listener in list(self._listeners):
            listener(self._state)

    def set_person_image(self, image: NormalizedImage | None) -> None:
        self._update(person_image=image)

    def set_garment_image(self, image: NormalizedImage | None) -> None:
        self._update(garment_image=image)

    def set_garment_description(self, text: str | None) -> None:
        self._update(garment_description=text or "")

    def _validated_inputs(self) -> tuple[NormalizedImage, NormalizedImage]:
        person = self._state.person_image
        garment = self._state.garment_image
        if person is None or garment is None:
            raise ValidationError(MISSING_IMAGES_MESSAGE)
        return person, garment

    @staticmethod
    def _coerce_results(images: Any) -> tuple[str, ...]:
        if images is None or isinstance(images, (str, bytes)):
            raise GenerationError("The generation service returned a malformed result.")
        results = tuple(images)
        if not all(isinstance(item, str) for item in results):
            raise GenerationError("The generation service returned a malformed result.")
        return results

    async def trigger_generation(self) -> WorkflowPhase:
        """
        Validate the held inputs and run one generation.

        Returns the phase the workflow ends in. A trigger received while a
        generation is in flight leaves the state untouched and returns
        :attr:`WorkflowPhase.GENERATING`.
        """
        if self._state.is_generating:
            logger.warning("Generation already in progress; ignoring trigger")
            return self._state.phase

        self._update(phase=WorkflowPhase.VALIDATING)
        try:
            person, garment = self._validated_inputs()
        except ValidationError as exc:
            self._update(results=(), last_error=str(exc), phase=WorkflowPhase.FAILED)
            return self._state.phase

        description = self._state.garment_description
        try:
            self._update(
                results=(),
                last_error=None,
                is_generating=True,
                phase=WorkflowPhase.GENERATING,
            )
            images = await self._generator.generate(
                person.to_part(), garment.to_part(), description
            )
            results = self._coerce_results(images)
        except asyncio.CancelledError:
            self._update(
                last_error=CANCELLED_MESSAGE,
                is_generating=False,
                phase=WorkflowPhase.FAILED,
            )
            raise
        except Exception as exc:
            logger.exception("Try-on generation failed")
            self._update(
                results=(),
                last_error=str(exc) or UNKNOWN_ERROR_MESSAGE,
                is_generating=False,
                phase=WorkflowPhase.FAILED,
            )
            return self._state.phase

        self._update(
            results=results,
            is_generating=False,
            phase=WorkflowPhase.SUCCEEDED,
        )
        logger.info("Generation succeeded with %d result(s)", len(results))
        return self._state.phase
