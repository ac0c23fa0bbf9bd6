"""Tests for context assembly and prompt augmentation."""

from ragchat.config.prompt_templates import CONTEXT_HEADER, MAX_CONTENT_CHARS, TRUNCATION_MARKER
from ragchat.src.core.context_builder import augment_prompt, format_context, truncate_content
from ragchat.src.core.models import Document, ScoredResult


def _result(title: str, content: str, score: float = 1.0) -> ScoredResult:
    return ScoredResult(document=Document(id=title, title=title, content=content), score=score)


class TestFormatContext:
    def test_empty_is_header_only(self):
        assert format_context([]) == CONTEXT_HEADER

    def test_entries_are_numbered_in_rank_order(self):
        block = format_context([_result("First", "one"), _result("Second", "two")])
        assert block.startswith(CONTEXT_HEADER)
        assert "[1] First\none" in block
        assert "[2] Second\ntwo" in block
        assert block.index("[1] First") < block.index("[2] Second")

    def test_entries_separated_by_blank_line(self):
        block = format_context([_result("A", "x"), _result("B", "y")])
        assert "x\n\n[2] B" in block

    def test_long_content_truncated_with_marker(self):
        block = format_context([_result("Long", "z" * 2000)])
        body = block.split("[1] Long\n", 1)[1]
        assert len(body) == MAX_CONTENT_CHARS
        assert body.endswith(TRUNCATION_MARKER)

    def test_short_content_untouched(self):
        text = "y" * MAX_CONTENT_CHARS
        assert truncate_content(text) == text

    def test_length_is_bounded(self):
        contents = ["a" * 50, "b" * 800, "c" * 5000]
        results = [_result(f"T{i}", c) for i, c in enumerate(contents, 1)]
        block = format_context(results)
        overhead = sum(len(f"[{i}] T{i}\n") + 2 for i in range(1, len(results) + 1))
        assert len(block) <= len(CONTEXT_HEADER) + sum(min(len(c), MAX_CONTENT_CHARS) for c in contents) + overhead


class TestAugmentPrompt:
    def test_prompt_contains_question_and_context(self):
        context = format_context([_result("AI", "AI is everywhere")])
        prompt = augment_prompt("Tell me about AI", context)
        assert "Question: Tell me about AI" in prompt
        assert "[1] AI" in prompt
        assert "general answer" in prompt

    def test_braces_in_query_are_literal(self):
        prompt = augment_prompt("what is {x}?", CONTEXT_HEADER)
        assert "what is {x}?" in prompt
