"""Summarize the divergence between two texts as insertion/deletion counts."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from diff_match_patch import diff_match_patch

from .models import DiffSummary

LOGGER = logging.getLogger(__name__)

_DIFF_DELETE = diff_match_patch.DIFF_DELETE
_DIFF_INSERT = diff_match_patch.DIFF_INSERT


@dataclass(slots=True)
class DiffSummarizer:
    """Count inserted and deleted characters between a file and a buffer.

    The diff is character based, uses line-mode speedups for large inputs,
    and is bounded by ``timeout`` seconds. When the bound is hit the
    underlying algorithm returns a coarser edit script, so the counts may
    overstate the real divergence but the call never fails. A ``timeout``
    of zero or less disables the bound.
    """

    timeout: float = 1.0
    edit_cost: int = 4
    check_lines: bool = True
    _engine: diff_match_patch = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._engine = diff_match_patch()
        self._configure_engine()

    def _configure_engine(self) -> None:
        # Re-applied per call so later changes to the fields take effect.
        self._engine.Diff_Timeout = max(0.0, float(self.timeout))
        self._engine.Diff_EditCost = max(0, int(self.edit_cost))

    def summarize(self, from_text: str, to_text: str) -> DiffSummary:
        if from_text is None or to_text is None:
            raise ValueError("Both texts must be provided")
        if from_text == to_text:
            return DiffSummary(0, 0)

        self._configure_engine()
        diffs = self._engine.diff_main(from_text, to_text, self.check_lines)
        self._engine.diff_cleanupEfficiency(diffs)

        insertions = 0
        deletions = 0
        for operation, text in diffs:
            if operation == _DIFF_INSERT:
                insertions += len(text)
            elif operation == _DIFF_DELETE:
                deletions += len(text)
        LOGGER.debug(
            "Diff summarized: from=%d chars, to=%d chars, +%d -%d",
            len(from_text),
            len(to_text),
            insertions,
            deletions,
        )
        return DiffSummary(insertions=insertions, deletions=deletions)

    __call__ = summarize


def summarize(from_text: str, to_text: str, *, timeout: float = 1.0) -> DiffSummary:
    """One-shot helper around :class:`DiffSummarizer`."""

    return DiffSummarizer(timeout=timeout).summarize(from_text, to_text)


__all__ = ["DiffSummarizer", "summarize"]
