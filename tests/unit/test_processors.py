"""Tests for input and output processors."""

import pytest

from promptpipeline.core.exceptions import ConfigurationError
from promptpipeline.processing import (
    TrimWhitespace,
    SanitizeInput,
    NormalizeLineBreaks,
    EscapeXmlContent,
    JsonEncodeArrays,
    TrimOutput,
    NormalizeWhitespace,
    StripMarkdownFences,
    ExtractXmlTag,
    ExtractJsonBlock,
    Deduplicate,
)


class TestInputProcessors:
    """Tests for processors that transform the variable map."""

    def test_trim_recursive(self):
        """Test nested strings are trimmed by default."""
        result = TrimWhitespace().process({"a": "  x ", "nested": {"b": " y "}, "items": [" z "], "n": 1})
        assert result == {"a": "x", "nested": {"b": "y"}, "items": ["z"], "n": 1}

    def test_trim_top_level_only(self):
        """Test recursive=False leaves nested values alone."""
        result = TrimWhitespace({"recursive": False}).process({"a": " x ", "nested": {"b": " y "}})
        assert result == {"a": "x", "nested": {"b": " y "}}

    def test_sanitize_nul(self):
        """Test NUL bytes are removed."""
        assert SanitizeInput().process({"a": "a\0b"}) == {"a": "ab"}

    def test_sanitize_strict(self):
        """Test strict mode strips template delimiters."""
        result = SanitizeInput({"strict": True}).process({"a": "Hi {{ secret }}{% if x %}{# c #}!"})
        assert result == {"a": "Hi !"}

    def test_sanitize_lenient_keeps_delimiters(self):
        """Test delimiters survive outside strict mode."""
        assert SanitizeInput().process({"a": "{{ x }}"}) == {"a": "{{ x }}"}

    def test_normalize_line_breaks(self):
        """Test CRLF and CR become LF."""
        assert NormalizeLineBreaks().process({"a": "a\r\nb\rc"}) == {"a": "a\nb\nc"}

    def test_escape_xml(self):
        """Test markup characters are entity-escaped."""
        result = EscapeXmlContent().process({"a": "<b>\"x\" & 'y'</b>"})
        assert result == {"a": "&lt;b&gt;&quot;x&quot; &amp; &apos;y&apos;&lt;/b&gt;"}

    def test_escape_xml_selected_keys(self):
        """Test only the named keys are escaped."""
        result = EscapeXmlContent({"keys": ["a"]}).process({"a": "<", "b": "<"})
        assert result == {"a": "&lt;", "b": "<"}

    def test_escape_xml_rejects_bad_keys(self):
        """Test keys must be a list."""
        with pytest.raises(ConfigurationError):
            EscapeXmlContent({"keys": "a"})

    def test_json_encode_arrays(self):
        """Test lists and dicts become JSON strings."""
        result = JsonEncodeArrays().process({"items": [1, 2], "meta": {"a": 1}, "s": "x"})
        assert result == {"items": "[1,2]", "meta": '{"a":1}', "s": "x"}

    def test_json_encode_pretty(self):
        """Test pretty encoding."""
        assert JsonEncodeArrays({"pretty": True}).process({"items": [1]}) == {"items": "[\n    1\n]"}


class TestOutputProcessors:
    """Tests for processors that transform rendered text."""

    def test_trim(self):
        """Test surrounding whitespace is stripped."""
        assert TrimOutput().process("  hi \n") == "hi"

    def test_normalize_whitespace(self):
        """Test spaces collapse and blank lines are capped."""
        assert NormalizeWhitespace().process("Hello    world\n\n\n\n\nNext  \n") == "Hello world\n\nNext"

    def test_normalize_whitespace_preserves_indentation(self):
        """Test leading indentation inside the text is kept."""
        assert NormalizeWhitespace().process("a\n    b   c") == "a\n    b c"
        assert NormalizeWhitespace({"preserve_indentation": False}).process("a\n    b") == "a\n b"

    def test_normalize_whitespace_idempotent(self):
        """Test a second pass changes nothing."""
        processor = NormalizeWhitespace()
        once = processor.process("  a   b\n\n\n\nc  \n\n")
        assert processor.process(once) == once

    def test_normalize_whitespace_blank_looking_lines(self):
        """Test whitespace-only lines count as blank when capping newlines."""
        processor = NormalizeWhitespace()
        once = processor.process("a\n   \n\n\nb")
        assert once == "a\n\nb"
        assert processor.process(once) == once

    def test_normalize_whitespace_validates(self):
        """Test max_newlines must be positive."""
        with pytest.raises(ConfigurationError):
            NormalizeWhitespace({"max_newlines": 0})

    def test_strip_fences(self):
        """Test fences are removed and content kept."""
        text = "Before\n```python\nprint(1)\n```\nAfter"
        assert StripMarkdownFences().process(text) == "Before\nprint(1)\nAfter"
        assert StripMarkdownFences({"preserve_content": False}).process(text) == "Before\n\nAfter"

    def test_extract_xml_tag(self, model_response):
        """Test tag content is extracted and trimmed."""
        assert ExtractXmlTag({"tag": "answer"}).process(model_response) == "Option B"
        assert ExtractXmlTag({"tag": "answer"}).process('<answer id="1"> x </answer>') == "x"

    def test_extract_xml_tag_missing(self):
        """Test input is returned unchanged when the tag is absent."""
        assert ExtractXmlTag({"tag": "answer"}).process("no tags") == "no tags"
        assert ExtractXmlTag().process("<answer>x</answer>") == "<answer>x</answer>"

    def test_extract_json_fenced(self, model_response):
        """Test a fenced JSON block wins."""
        assert ExtractJsonBlock().process(model_response) == '{"choice": "B", "confidence": 0.8}'

    def test_extract_json_bare(self):
        """Test a bare JSON span is found."""
        assert ExtractJsonBlock().process('Result: {"a": 1} done') == '{"a": 1}'

    def test_extract_json_fallback(self):
        """Test the raw text or empty string comes back when there is no JSON."""
        assert ExtractJsonBlock().process("no json here") == "no json here"
        assert ExtractJsonBlock({"fallback_raw": False}).process("no json here") == ""

    def test_deduplicate_defaults(self):
        """Test configured default strategies run."""
        assert Deduplicate().process("a   b\n\n\n\n\nc") == "a b\n\n\nc"

    def test_deduplicate_strategies(self):
        """Test explicit strategies and per-strategy options."""
        assert Deduplicate({"strategies": ["duplicate_lines"]}).process("a\na\nb") == "a\nb"
        processor = Deduplicate({"strategies": ["blank_lines"], "blankLines": {"max_consecutive": 0}})
        assert processor.process("a\n\n\nb") == "a\nb"

    def test_deduplicate_validates(self):
        """Test strategies must be a list."""
        with pytest.raises(ConfigurationError):
            Deduplicate({"strategies": "whitespace"})
