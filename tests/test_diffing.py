"""Tests for the diff summarizer."""

from __future__ import annotations

import pytest

from livefile.diffing import DiffSummarizer, summarize
from livefile.models import DiffSummary


class TestDiffSummarizer:
    """Counting insertions and deletions."""

    def test_identical_texts_are_zero(self) -> None:
        summarizer = DiffSummarizer()
        assert summarizer.summarize("same text", "same text") == DiffSummary(0, 0)

    def test_empty_texts_are_zero(self) -> None:
        assert summarize("", "") == DiffSummary(0, 0)

    def test_appended_text_counts_insertions(self) -> None:
        assert summarize("hello", "hello world") == DiffSummary(insertions=6, deletions=0)

    def test_removed_text_counts_deletions(self) -> None:
        assert summarize("hello world", "hello") == DiffSummary(insertions=0, deletions=6)

    def test_substitution_counts_both(self) -> None:
        assert summarize("abc", "axc") == DiffSummary(insertions=1, deletions=1)

    def test_removed_line(self) -> None:
        assert summarize("a\nb\nc\n", "a\nc\n") == DiffSummary(insertions=0, deletions=2)

    def test_from_empty_counts_every_character(self) -> None:
        assert summarize("", "four") == DiffSummary(insertions=4, deletions=0)

    @pytest.mark.parametrize(
        ("first", "second"),
        [
            ("hello", "hello world"),
            ("abc", "axc"),
            ("a\nb\nc\n", "a\nc\n"),
            ("", "text"),
        ],
    )
    def test_swapping_inputs_swaps_counts(self, first: str, second: str) -> None:
        """Insertions one way are deletions the other way."""
        forward = summarize(first, second)
        backward = summarize(second, first)
        assert forward.insertions == backward.deletions
        assert forward.deletions == backward.insertions

    def test_repeated_calls_are_deterministic(self) -> None:
        summarizer = DiffSummarizer()
        first = summarizer.summarize("The quick brown fox", "The quick red fox jumps")
        for _ in range(3):
            assert summarizer.summarize("The quick brown fox", "The quick red fox jumps") == first

    def test_identical_inputs_skip_diff_engine(self, monkeypatch: pytest.MonkeyPatch) -> None:
        summarizer = DiffSummarizer()

        def _fail(*_args: object, **_kwargs: object) -> None:
            raise AssertionError("diff engine should not run")

        monkeypatch.setattr(summarizer._engine, "diff_main", _fail)
        assert summarizer.summarize("x" * 1000, "x" * 1000) == DiffSummary(0, 0)

    def test_summarizer_is_callable(self) -> None:
        summarizer = DiffSummarizer()
        assert summarizer("hello", "hello!") == DiffSummary(insertions=1, deletions=0)

    def test_none_input_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            DiffSummarizer().summarize(None, "text")  # type: ignore[arg-type]


class TestDiffTimeout:
    """The timeout bound is configuration, never a failure."""

    def test_timeout_is_applied_to_engine(self) -> None:
        summarizer = DiffSummarizer(timeout=0.25, edit_cost=6)
        assert summarizer._engine.Diff_Timeout == pytest.approx(0.25)
        assert summarizer._engine.Diff_EditCost == 6

    def test_negative_timeout_disables_bound(self) -> None:
        summarizer = DiffSummarizer(timeout=-1)
        assert summarizer._engine.Diff_Timeout == 0.0

    def test_changed_settings_apply_on_next_call(self) -> None:
        summarizer = DiffSummarizer()
        summarizer.timeout = 0.5
        summarizer.edit_cost = 2

        summarizer.summarize("abc", "abd")

        assert summarizer._engine.Diff_Timeout == pytest.approx(0.5)
        assert summarizer._engine.Diff_EditCost == 2

    def test_tiny_timeout_still_returns_summary(self) -> None:
        before = "\n".join(f"line {index} alpha" for index in range(2000))
        after = "\n".join(f"line {index} beta" for index in range(0, 2000, 2))
        result = DiffSummarizer(timeout=0.0001).summarize(before, after)
        assert isinstance(result, DiffSummary)
        assert result.is_different
        # Any edit script must at least cover the length difference.
        assert result.deletions - result.insertions == len(before) - len(after)
