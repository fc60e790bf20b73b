"""Shared studio state.

StudioState is the single owner of everything the concurrent angle tasks
touch: the per-angle results, the listing, the current cycle id and the
registry of live image handles. Writes carry the cycle id they were started
under; writes from an older cycle are discarded and any image they carry is
released on the spot.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from typing import Any

from snapsell.core.studio.errors import FailureCause
from snapsell.core.studio.export import apply_listing_edit
from snapsell.core.studio.images import ImageHandleRegistry
from snapsell.core.studio.models import (
    ANGLE_LABELS,
    AngleResult,
    AngleStatus,
    ListingIntelligence,
)

logger = logging.getLogger(__name__)

AngleListener = Callable[[AngleResult], None]


class StudioState:
    """Cycle-scoped state for one studio session.

    Args:
        labels: Angle labels, in display order
    """

    def __init__(self, labels: Iterable[str] = ANGLE_LABELS) -> None:
        self.labels: tuple[str, ...] = tuple(labels)
        self._angles = {label: AngleResult(label=label) for label in self.labels}
        self._listing: ListingIntelligence | None = None
        self._cycle_id = 0
        self._handles = ImageHandleRegistry()
        self._listeners: list[AngleListener] = []

    @property
    def cycle_id(self) -> int:
        return self._cycle_id

    @property
    def listing(self) -> ListingIntelligence | None:
        return self._listing

    @property
    def angles(self) -> list[AngleResult]:
        return [self._angles[label] for label in self.labels]

    @property
    def live_handle_count(self) -> int:
        return len(self._handles)

    def angle(self, label: str) -> AngleResult:
        return self._angles[label]

    def is_current(self, cycle_id: int) -> bool:
        return cycle_id == self._cycle_id

    def subscribe(self, listener: AngleListener) -> None:
        """Call ``listener`` with every angle result accepted into state."""
        self._listeners.append(listener)

    def begin_cycle(self) -> int:
        """Start a new cycle.

        Releases every handle from earlier cycles, resets all angles to
        pending and clears the listing.

        Returns:
            The new cycle id
        """
        released = self._handles.release_all()
        self._cycle_id += 1
        self._angles = {label: AngleResult.pending(label) for label in self.labels}
        self._listing = None
        logger.debug("Started cycle %d (released %d image handles)", self._cycle_id, released)
        return self._cycle_id

    def apply_angle_result(self, cycle_id: int, result: AngleResult) -> bool:
        """Store an angle result if it belongs to the current cycle.

        Returns:
            True when applied. False when stale or for an unknown label, in
            which case the result's image (if any) has been released.
        """
        if not self.is_current(cycle_id) or result.label not in self._angles:
            if result.image is not None:
                result.image.release()
            logger.debug(
                "Discarded result for %s from cycle %d (current %d)",
                result.label,
                cycle_id,
                self._cycle_id,
            )
            return False

        previous = self._angles[result.label].image
        if previous is not None and previous is not result.image:
            self._handles.release(previous)
        if result.image is not None:
            self._handles.track(result.image)

        self._angles[result.label] = result
        for listener in self._listeners:
            listener(result)
        return True

    def set_listing(self, cycle_id: int, listing: ListingIntelligence) -> bool:
        if not self.is_current(cycle_id):
            logger.debug("Discarded listing from stale cycle %d", cycle_id)
            return False
        self._listing = listing
        return True

    def fail_pending(
        self, cycle_id: int, message: str, cause: FailureCause | None = None
    ) -> list[str]:
        """Mark every still-pending angle of ``cycle_id`` as failed.

        Returns:
            Labels that were marked
        """
        marked: list[str] = []
        for label in self.labels:
            if self._angles[label].status is AngleStatus.PENDING:
                result = AngleResult(
                    label=label,
                    status=AngleStatus.ERROR,
                    error_message=message,
                    error_cause=cause,
                )
                if self.apply_angle_result(cycle_id, result):
                    marked.append(label)
        return marked

    def edit_listing(self, path: Sequence[str | int], value: Any) -> ListingIntelligence:
        """Apply a local edit to the current listing. Never calls the service.

        Raises:
            LookupError: There is no listing yet
        """
        if self._listing is None:
            raise LookupError("No listing to edit")
        self._listing = apply_listing_edit(self._listing, path, value)
        return self._listing

    def release_all(self) -> int:
        """Release every live handle (end of session)."""
        return self._handles.release_all()
