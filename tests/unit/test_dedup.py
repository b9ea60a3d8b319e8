"""Tests for deduplication strategies."""

import pytest

from promptpipeline.dedup import (
    WhitespaceStrategy,
    BlankLinesStrategy,
    DuplicateLinesStrategy,
    DuplicateSentencesStrategy,
    create_strategy,
    deduplicate,
    strategy_defaults,
)


class TestWhitespace:
    """Tests for the whitespace strategy."""

    def test_collapses_runs(self):
        """Test spaces and tabs collapse and lines are right-trimmed."""
        assert WhitespaceStrategy().apply("a   b\t\tc  \nd") == "a b c\nd"

    def test_preserve_indentation(self):
        """Test leading indentation survives when asked."""
        strategy = WhitespaceStrategy({"preserve_indentation": True})
        assert strategy.apply("    a   b") == "    a b"

    def test_disabled(self):
        """Test both passes can be switched off."""
        strategy = WhitespaceStrategy({"normalize_spaces": False, "trim_lines": False})
        assert strategy.apply("a   b  ") == "a   b  "


class TestBlankLines:
    """Tests for the blank lines strategy."""

    def test_caps_runs(self):
        """Test runs of blank lines are capped at max_consecutive."""
        assert BlankLinesStrategy().apply("a\n\n\n\n\nb") == "a\n\n\nb"

    def test_zero_blank_lines(self):
        """Test max_consecutive of zero removes blank lines."""
        assert BlankLinesStrategy({"max_consecutive": 0}).apply("a\n\n\n\nb") == "a\nb"

    def test_trims_edges(self):
        """Test leading and trailing newlines are trimmed."""
        assert BlankLinesStrategy().apply("\n\na\n\n") == "a"
        assert BlankLinesStrategy({"trim_start": False}).apply("\na\n") == "\na"


class TestDuplicateLines:
    """Tests for the duplicate lines strategy."""

    def test_consecutive_duplicates(self):
        """Test a line repeating the previous one is dropped."""
        text = "Line 1\nLine 1\nLine 2\nLine 2\nLine 3"
        assert DuplicateLinesStrategy().apply(text) == "Line 1\nLine 2\nLine 3"

    def test_non_consecutive_kept(self):
        """Test only adjacent repeats are removed."""
        assert DuplicateLinesStrategy().apply("a\nb\na") == "a\nb\na"

    def test_case_and_whitespace(self):
        """Test comparison ignores case and surrounding whitespace by default."""
        assert DuplicateLinesStrategy().apply("Hello\n  hello ") == "Hello"
        assert DuplicateLinesStrategy({"case_sensitive": True}).apply("Hello\nhello") == "Hello\nhello"

    def test_blank_lines_pass(self):
        """Test blank lines are never dropped."""
        assert DuplicateLinesStrategy().apply("a\n\n\nb") == "a\n\n\nb"


class TestDuplicateSentences:
    """Tests for the duplicate sentences strategy."""

    def test_near_duplicates_removed(self):
        """Test sentences above the similarity threshold are dropped."""
        text = "The sky is blue. The sky is blue! Grass is green."
        assert DuplicateSentencesStrategy().apply(text) == "The sky is blue. Grass is green."

    def test_single_sentence_unchanged(self):
        """Test text with fewer than two sentences is returned as-is."""
        assert DuplicateSentencesStrategy().apply("Just one.  ") == "Just one.  "

    def test_exact_threshold(self):
        """Test a threshold of 1.0 only drops exact repeats."""
        strategy = DuplicateSentencesStrategy({"similarity_threshold": 1.0})
        assert strategy.apply("Hi there. Hi there! Hi there.") == "Hi there. Hi there!"

    def test_compares_against_all_kept(self):
        """Test a repeat of an earlier, non-adjacent sentence is dropped."""
        text = "Alpha is first. Beta is second. Alpha is first."
        assert DuplicateSentencesStrategy().apply(text) == "Alpha is first. Beta is second."


class TestDeduplicate:
    """Tests for the strategy runner."""

    def test_defaults_from_settings(self, settings):
        """Test configured default strategies run when none are given."""
        assert deduplicate("\n\na   b\n\n", settings=settings.deduplication) == "a b"

    def test_camel_case_alias(self, settings):
        """Test camelCase strategy names resolve."""
        assert deduplicate("a\na", ["duplicateLines"], settings=settings.deduplication) == "a"

    def test_unknown_skipped(self, settings):
        """Test unknown strategies are skipped."""
        assert deduplicate("a   b", ["nope", "whitespace"], settings=settings.deduplication) == "a b"

    def test_per_strategy_options(self, settings):
        """Test options override configured defaults."""
        result = deduplicate(
            "a\n\n\n\nb",
            ["blank_lines"],
            {"blankLines": {"max_consecutive": 0}},
            settings=settings.deduplication,
        )
        assert result == "a\nb"

    def test_configured_options(self, make_settings):
        """Test strategy settings become defaults."""
        settings = make_settings(deduplication={"blank_lines": {"max_consecutive": 0}})
        assert deduplicate("a\n\n\nb", ["blank_lines"], settings=settings.deduplication) == "a\nb"

    def test_create_strategy(self, settings):
        """Test strategy construction by name."""
        assert isinstance(create_strategy("duplicateSentences", settings=settings.deduplication), DuplicateSentencesStrategy)
        with pytest.raises(KeyError):
            create_strategy("nope", settings=settings.deduplication)

    def test_strategy_defaults(self, settings):
        """Test defaults come from the matching settings section."""
        assert strategy_defaults("whitespace", settings.deduplication)["normalize_spaces"] is True
        assert strategy_defaults("unknown", settings.deduplication) == {}
