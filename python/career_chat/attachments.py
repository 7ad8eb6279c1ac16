"""
Attachment Stager.

Holds the files a user has picked or dropped but not yet sent. Files over
the size limit are dropped without an error: the caller only ever sees
the accepted set.

Drag-and-drop is tracked as a small state machine:

    IDLE -> DRAG_OVER -> IDLE               (drag leaves)
    IDLE -> DRAG_OVER -> STAGING -> IDLE    (files dropped)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Optional

from .models import Attachment, CandidateFile, DragState


__all__ = [
    "AttachmentStager",
    "DEFAULT_ACCEPTED_FILE_TYPES",
    "DEFAULT_MAX_FILE_SIZE_BYTES",
    "DragPhase",
    "StagerConfig",
    "format_file_size",
    "parse_accept_attribute",
]


logger = logging.getLogger(__name__)

DEFAULT_MAX_FILE_SIZE_BYTES = 10 * 1024 * 1024
DEFAULT_ACCEPTED_FILE_TYPES: frozenset[str] = frozenset({".pdf", ".docx", ".txt"})

_SIZE_UNITS = ("Bytes", "KB", "MB", "GB")


def format_file_size(size_bytes: int) -> str:
    """
    Human-readable size with up to two decimals.

    Example:
        >>> format_file_size(0)
        '0 Bytes'
        >>> format_file_size(1536)
        '1.5 KB'
    """
    if size_bytes < 0:
        raise ValueError(f"size_bytes must be >= 0, got {size_bytes}")
    if size_bytes == 0:
        return "0 Bytes"

    value = float(size_bytes)
    unit = 0
    while value >= 1024 and unit < len(_SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {_SIZE_UNITS[unit]}"


def parse_accept_attribute(accept: str) -> frozenset[str]:
    """Turn a picker ``accept`` string like ``".pdf,.docx"`` into an extension set."""
    return frozenset(
        part.strip().lower() for part in accept.split(",") if part.strip()
    )


class DragPhase(str, Enum):
    IDLE = "idle"
    DRAG_OVER = "drag_over"
    STAGING = "staging"


@dataclass(frozen=True)
class StagerConfig:
    """
    Chat-surface file settings, passed through unchanged from the active tool.

    ``accepted_file_types`` feeds the picker's ``accept`` attribute. Only
    the size limit and the enabled flag affect what ``stage`` accepts.
    """

    accepted_file_types: frozenset[str] = field(default=DEFAULT_ACCEPTED_FILE_TYPES)
    max_file_size_bytes: int = DEFAULT_MAX_FILE_SIZE_BYTES
    file_upload_enabled: bool = True

    def __post_init__(self) -> None:
        if self.max_file_size_bytes <= 0:
            raise ValueError(
                f"max_file_size_bytes must be > 0, got {self.max_file_size_bytes}"
            )

    @property
    def accept_attribute(self) -> str:
        return ",".join(sorted(self.accepted_file_types))


class AttachmentStager:
    """
    Pending attachment set plus drag state.

    The pending list is ordered by submission and owned here until
    ``take_all`` hands the whole set to an outgoing message.

    Example:
        >>> stager = AttachmentStager()
        >>> accepted = stager.stage([CandidateFile(name="cv.pdf", size_bytes=2048)])
        >>> [a.name for a in stager.take_all()]
        ['cv.pdf']
        >>> stager.pending
        []
    """

    def __init__(
        self,
        config: Optional[StagerConfig] = None,
        on_change: Optional[Callable[[list[Attachment]], None]] = None,
        on_drag_change: Optional[Callable[[DragState], None]] = None,
    ) -> None:
        self._config = config or StagerConfig()
        self._pending: list[Attachment] = []
        self._phase = DragPhase.IDLE
        self._on_change = on_change
        self._on_drag_change = on_drag_change

    @property
    def config(self) -> StagerConfig:
        return self._config

    @property
    def pending(self) -> list[Attachment]:
        return list(self._pending)

    @property
    def phase(self) -> DragPhase:
        return self._phase

    @property
    def drag_state(self) -> DragState:
        return DragState(is_over=self._phase == DragPhase.DRAG_OVER)

    def configure(self, config: StagerConfig) -> None:
        """Swap the surface settings. Already-pending files are kept."""
        self._config = config

    def stage(
        self,
        candidates: Iterable[CandidateFile],
        max_size_bytes: int | None = None,
    ) -> list[Attachment]:
        """
        Accept every candidate whose size is within the limit.

        Args:
            candidates: Files offered by a picker or drop, in order.
            max_size_bytes: Override for the configured limit.

        Returns:
            The newly accepted attachments, in submission order.
        """
        limit = self._config.max_file_size_bytes if max_size_bytes is None else max_size_bytes
        if limit <= 0:
            raise ValueError(f"max_size_bytes must be > 0, got {limit}")

        if not self._config.file_upload_enabled:
            logger.debug("File upload disabled, ignoring candidates")
            return []

        accepted: list[Attachment] = []
        for candidate in candidates:
            if candidate.size_bytes > limit:
                logger.debug(
                    "Dropped %s: %d bytes exceeds limit of %d",
                    candidate.name,
                    candidate.size_bytes,
                    limit,
                )
                continue
            accepted.append(
                Attachment(
                    name=candidate.name,
                    mime_type=candidate.mime_type,
                    size_bytes=candidate.size_bytes,
                )
            )

        if accepted:
            self._pending.extend(accepted)
            self._notify()
        return accepted

    def remove(self, attachment_id: str) -> bool:
        """Delete a pending attachment by id. Unknown ids are a no-op."""
        for index, attachment in enumerate(self._pending):
            if attachment.id == attachment_id:
                del self._pending[index]
                self._notify()
                return True
        logger.debug("remove(%s): not pending", attachment_id)
        return False

    def take_all(self) -> tuple[Attachment, ...]:
        """Move the entire pending set out, leaving it empty."""
        taken = tuple(self._pending)
        self._pending = []
        if taken:
            self._notify()
        return taken

    def clear(self) -> None:
        """Drop pending files and end any drag in progress."""
        had_pending = bool(self._pending)
        self._pending = []
        self._set_phase(DragPhase.IDLE)
        if had_pending:
            self._notify()

    def drag_over(self) -> bool:
        """
        Enter (or stay in) the drag-over state.

        Returns:
            True: the platform's default drop handling must be suppressed.
        """
        self._set_phase(DragPhase.DRAG_OVER)
        return True

    def drag_leave(self) -> bool:
        """Leave the drag-over state. Returns True to suppress the default."""
        self._set_phase(DragPhase.IDLE)
        return True

    def drop(
        self,
        candidates: Iterable[CandidateFile],
        max_size_bytes: int | None = None,
    ) -> list[Attachment]:
        """Stage dropped files and return to idle."""
        self._set_phase(DragPhase.STAGING)
        try:
            return self.stage(candidates, max_size_bytes)
        finally:
            self._set_phase(DragPhase.IDLE)

    def _set_phase(self, phase: DragPhase) -> None:
        if phase == self._phase:
            return
        was_over = self._phase == DragPhase.DRAG_OVER
        self._phase = phase
        is_over = phase == DragPhase.DRAG_OVER
        if was_over != is_over and self._on_drag_change is not None:
            self._on_drag_change(DragState(is_over=is_over))

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(list(self._pending))
