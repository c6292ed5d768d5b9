"""Generation orchestrator: fan-out, all-or-nothing settle, history."""

import asyncio
import logging
from dataclasses import replace
from pathlib import Path
from typing import Callable, List, Optional, Union

from creative_studio.core.base_service import GenerationService
from creative_studio.core.exceptions import GenerationInProgressError, ServiceError
from creative_studio.core.models import (
    GenerationRequest,
    GenerationResult,
    GenerationState,
    Phase,
    Slot,
    SlotStatus,
)
from creative_studio.core.payload_builder import EMPTY_PROMPT_MESSAGE
from creative_studio.utils.export import export_image
from creative_studio.utils.persistence import PersistenceStore

logger = logging.getLogger(__name__)

INVALID_COUNT_MESSAGE = "Image count must be at least 1"
UNEXPECTED_FAILURE_MESSAGE = "Generation failed"

StateListener = Callable[[GenerationState], None]


class GenerationOrchestrator:
    """Drives batches of concurrent generation calls to a settled state.

    The orchestrator owns the application state: the current
    GenerationState, the last successful prompt and request, and the
    persistence store. Consumers observe it through ``subscribe``.

    A batch is all-or-nothing: results are exposed only if every call
    succeeds. Calling ``generate`` while a batch is in flight is rejected
    with GenerationInProgressError.

    Attributes:
        service: Service that renders individual images
        store: History and theme persistence
        persist_batch_history: Whether multi-image batches are added to history
    """

    def __init__(
        self,
        service: GenerationService,
        store: PersistenceStore,
        persist_batch_history: bool = False
    ):
        """Initialize the orchestrator.

        Args:
            service: Generation service used for every call
            store: Persistence store for history entries
            persist_batch_history: Also record multi-image batches in history
        """
        self.service = service
        self.store = store
        self.persist_batch_history = persist_batch_history

        self._state = GenerationState()
        self._listeners: List[StateListener] = []
        self._busy = False
        self._last_request: Optional[GenerationRequest] = None
        self._last_count = 1

        logger.info(f"Initialized GenerationOrchestrator with service: {service.name}")

    @property
    def state(self) -> GenerationState:
        """Current state snapshot."""
        return self._state

    @property
    def last_prompt(self) -> Optional[str]:
        """Prompt echoed by the service for the last successful batch."""
        return self._last_request.prompt if self._last_request else None

    @property
    def last_request(self) -> Optional[GenerationRequest]:
        """Request that produced the last successful batch."""
        return self._last_request

    @property
    def current_results(self) -> List[GenerationResult]:
        """Results currently on display (empty unless the last batch succeeded)."""
        return list(self._state.results)

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a callback invoked with every new state.

        Args:
            listener: Callable receiving a GenerationState

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def generate(self, request: GenerationRequest, count: int = 1) -> GenerationState:
        """Generate ``count`` images for ``request`` concurrently.

        Args:
            request: The generation request (identical payload for every call)
            count: Number of images to generate (minimum 1)

        Returns:
            The settled GenerationState

        Raises:
            GenerationInProgressError: If a batch is already in flight
        """
        if self._busy:
            raise GenerationInProgressError("A generation is already in progress")
        self._busy = True

        try:
            return await self._run(request, count)
        finally:
            self._busy = False

    async def regenerate(self, count: Optional[int] = None) -> GenerationState:
        """Re-issue the last successful request.

        Args:
            count: Number of images (defaults to the last batch size)

        Returns:
            The settled GenerationState; a failure if nothing succeeded yet

        Raises:
            GenerationInProgressError: If a batch is already in flight
        """
        if self._last_request is None:
            if self._busy:
                raise GenerationInProgressError("A generation is already in progress")
            logger.info("Regenerate requested before any successful generation")
            return self._settle_failure(EMPTY_PROMPT_MESSAGE)

        return await self.generate(self._last_request, count or self._last_count)

    def copy_last_prompt(self, sink: Callable[[str], None]) -> bool:
        """Hand the last successful prompt to ``sink`` (e.g. a clipboard).

        Returns:
            True if a prompt was copied, False if nothing has succeeded yet
        """
        prompt = self.last_prompt
        if not prompt:
            return False
        sink(prompt)
        return True

    def export_current_image(
        self,
        directory: Union[str, Path],
        index: int = 0
    ) -> Optional[Path]:
        """Save the displayed image at ``index`` to ``directory``.

        Returns:
            Path of the exported file, or None if no image is displayed
        """
        results = self._state.results
        if not 0 <= index < len(results):
            logger.warning("No image available for export")
            return None
        return export_image(results[index].image, directory, results[index].timestamp)

    async def _run(self, request: GenerationRequest, count: int) -> GenerationState:
        self._transition(GenerationState(phase=Phase.VALIDATING))

        if not request.prompt or not request.prompt.strip():
            logger.info("Rejected generation with empty prompt")
            return self._settle_failure(EMPTY_PROMPT_MESSAGE)

        if count < 1:
            logger.info(f"Rejected generation with count={count}")
            return self._settle_failure(INVALID_COUNT_MESSAGE)

        logger.info(f"Dispatching {count} generation call(s) to {self.service.name}")
        self._transition(GenerationState(
            phase=Phase.DISPATCHING,
            slots=tuple(Slot(index=i) for i in range(count)),
        ))

        failures: List[str] = []
        outcomes = await asyncio.gather(
            *(self._dispatch_slot(i, request, failures) for i in range(count)),
            return_exceptions=True
        )

        # _dispatch_slot records its own failures; anything else escaped it.
        for outcome in outcomes:
            if isinstance(outcome, BaseException) and not failures:
                failures.append(UNEXPECTED_FAILURE_MESSAGE)

        if failures:
            logger.error(
                f"Batch of {count} failed ({len(failures)} call(s)): {failures[0]}"
            )
            return self._settle_failure(failures[0])

        results = tuple(outcomes)
        self._last_request = request.model_copy(update={"prompt": results[0].prompt})
        self._last_count = count

        if count == 1 or self.persist_batch_history:
            for result in reversed(results):
                self.store.record(result)

        logger.info(f"Batch of {count} settled successfully")
        return self._transition(GenerationState(phase=Phase.SETTLED, results=results))

    async def _dispatch_slot(
        self,
        index: int,
        request: GenerationRequest,
        failures: List[str]
    ) -> Optional[GenerationResult]:
        """Run one call and reflect its outcome in slot ``index``."""
        try:
            result = await self.service.generate(request)
        except ServiceError as e:
            failures.append(e.message)
            self._update_slot(index, SlotStatus.FAILED, error=e.message)
            return None
        except Exception as e:
            logger.exception(f"Unexpected error in slot {index}: {e}")
            failures.append(UNEXPECTED_FAILURE_MESSAGE)
            self._update_slot(index, SlotStatus.FAILED, error=UNEXPECTED_FAILURE_MESSAGE)
            return None

        self._update_slot(index, SlotStatus.LOADED, result=result)
        return result

    def _update_slot(
        self,
        index: int,
        status: SlotStatus,
        result: Optional[GenerationResult] = None,
        error: Optional[str] = None
    ) -> None:
        slots = list(self._state.slots)
        slots[index] = Slot(index=index, status=status, result=result, error=error)
        self._transition(replace(self._state, slots=tuple(slots)))

    def _settle_failure(self, message: str) -> GenerationState:
        return self._transition(GenerationState(phase=Phase.SETTLED, error=message))

    def _transition(self, state: GenerationState) -> GenerationState:
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                logger.warning(f"State listener {listener!r} failed: {e}")
        return state
