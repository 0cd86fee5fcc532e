"""Application shell: per-browser UI state and the intake -> identify -> present sequence.

States:
    idle -> image_selected -> identifying -> (result | error)

Selecting an image is allowed from any state and always lands in
``image_selected`` with result and error cleared. State is held as an
immutable ``ShellState`` that is replaced on every transition.
"""

from __future__ import annotations

import logging
import secrets
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, replace
from enum import StrEnum
from typing import TYPE_CHECKING

from ayurvision.genai.errors import IdentificationError

if TYPE_CHECKING:
    from collections.abc import Callable

    from ayurvision.genai.client import PlantIdentifier
    from ayurvision.genai.schema import IdentificationResult
    from ayurvision.intake import ImageUpload, Preview, PreviewStore

logger = logging.getLogger(__name__)

NOT_A_PLANT_MESSAGE = "The uploaded image does not appear to be a plant or could not be identified."


class ShellStatus(StrEnum):
    IDLE = "idle"
    IMAGE_SELECTED = "image_selected"
    IDENTIFYING = "identifying"
    RESULT = "result"
    ERROR = "error"


@dataclass(frozen=True)
class ShellState:
    status: ShellStatus = ShellStatus.IDLE
    image: ImageUpload | None = None
    preview: Preview | None = None
    result: IdentificationResult | None = None
    error: str | None = None

    @property
    def is_loading(self) -> bool:
        return self.status is ShellStatus.IDENTIFYING

    @property
    def can_identify(self) -> bool:
        return self.image is not None and not self.is_loading


class AnalysisShell:
    """Holds one user's state and sequences identification requests."""

    def __init__(self, identifier: PlantIdentifier, previews: PreviewStore) -> None:
        self._identifier = identifier
        self._previews = previews
        self._state = ShellState()

    @property
    def state(self) -> ShellState:
        return self._state

    def select_image(self, upload: ImageUpload) -> ShellState:
        """Make ``upload`` the current image, releasing the previous preview."""
        if self._state.preview is not None:
            self._previews.release(self._state.preview.id)
        self._state = ShellState(
            status=ShellStatus.IMAGE_SELECTED,
            image=upload,
            preview=self._previews.create(upload),
        )
        return self._state

    async def identify(self) -> ShellState:
        """Run one identification for the current image.

        A no-op when no image is selected or a call is already in flight.
        """
        image = self._state.image
        if image is None or self._state.is_loading:
            return self._state

        self._state = replace(self._state, status=ShellStatus.IDENTIFYING, result=None, error=None)
        started = self._state

        try:
            result = await self._identifier.identify(image.data, image.mime_type)
        except IdentificationError as exc:
            outcome = replace(started, status=ShellStatus.ERROR, error=exc.message)
        else:
            if result.is_plant:
                outcome = replace(started, status=ShellStatus.RESULT, result=result)
            else:
                outcome = replace(started, status=ShellStatus.ERROR, error=NOT_A_PLANT_MESSAGE)

        # The image may have been replaced while the call was in flight.
        if self._state is not started:
            logger.info("Discarding identification outcome for a superseded image")
            return self._state

        self._state = outcome
        return self._state

    def close(self) -> None:
        """Release held resources and return to idle."""
        if self._state.preview is not None:
            self._previews.release(self._state.preview.id)
        self._state = ShellState()


class SessionRegistry:
    """In-memory map of browser session ids to their shells.

    Bounded two ways: shells idle for longer than ``idle_timeout`` seconds are
    dropped, and once ``max_sessions`` is reached the least recently used shell
    is evicted. Dropped shells are closed so their previews are released.
    """

    def __init__(
        self,
        identifier: PlantIdentifier,
        previews: PreviewStore,
        *,
        max_sessions: int = 1000,
        idle_timeout: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_sessions < 1:
            raise ValueError(f"max_sessions must be at least 1, got {max_sessions}")
        self._identifier = identifier
        self._previews = previews
        self._max_sessions = max_sessions
        self._idle_timeout = idle_timeout
        self._clock = clock
        self._lock = threading.Lock()
        # Least recently used first.
        self._shells: OrderedDict[str, tuple[AnalysisShell, float]] = OrderedDict()

    @property
    def previews(self) -> PreviewStore:
        return self._previews

    @staticmethod
    def new_session_id() -> str:
        return secrets.token_urlsafe(16)

    def get(self, session_id: str) -> AnalysisShell | None:
        """Return the live shell for ``session_id`` without creating one."""
        with self._lock:
            expired = self._prune_expired()
            entry = self._shells.get(session_id)
            if entry is not None:
                self._touch(session_id, entry[0])
        self._close(expired)
        return entry[0] if entry is not None else None

    def get_or_create(self, session_id: str) -> AnalysisShell:
        with self._lock:
            dropped = self._prune_expired()
            entry = self._shells.get(session_id)
            if entry is None:
                while len(self._shells) >= self._max_sessions:
                    _, (evicted, _) = self._shells.popitem(last=False)
                    dropped.append(evicted)
                shell = AnalysisShell(self._identifier, self._previews)
            else:
                shell = entry[0]
            self._touch(session_id, shell)
        if dropped:
            logger.info("Evicted %d session(s)", len(dropped))
        self._close(dropped)
        return shell

    def close_all(self) -> None:
        with self._lock:
            shells = [shell for shell, _ in self._shells.values()]
            self._shells.clear()
        self._close(shells)
        self._previews.clear()
        logger.info("Closed %d session(s)", len(shells))

    def _touch(self, session_id: str, shell: AnalysisShell) -> None:
        self._shells[session_id] = (shell, self._clock())
        self._shells.move_to_end(session_id)

    def _prune_expired(self) -> list[AnalysisShell]:
        cutoff = self._clock() - self._idle_timeout
        expired: list[AnalysisShell] = []
        while self._shells:
            session_id, (shell, last_seen) = next(iter(self._shells.items()))
            if last_seen > cutoff:
                break
            del self._shells[session_id]
            expired.append(shell)
        return expired

    @staticmethod
    def _close(shells: list[AnalysisShell]) -> None:
        for shell in shells:
            shell.close()

    def __len__(self) -> int:
        with self._lock:
            return len(self._shells)
