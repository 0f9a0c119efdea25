"""Tests for prompt templates and prompt selection."""
from __future__ import annotations

from hintify.models import Classification, Difficulty, PromptContext, PromptMode, QuestionType
from hintify.prompts import (
    IMAGE_HINT_PROMPT,
    MATH_FORMATTING,
    REGENERATION_PROMPT,
    STANDARD_PROMPT,
    STORY_PROMPT,
    build_prompt,
    select_mode,
)

MCQ_EASY = Classification(QuestionType.MCQ, Difficulty.EASY)


class TestSelectMode:
    def test_story_replaces_standard(self):
        assert select_mode(PromptMode.STANDARD, story_mode=True) == PromptMode.STORY

    def test_story_leaves_other_modes(self):
        assert select_mode(PromptMode.REGENERATION, story_mode=True) == PromptMode.REGENERATION
        assert select_mode(PromptMode.IMAGE_DIRECT, story_mode=True) == PromptMode.IMAGE_DIRECT

    def test_off_keeps_standard(self):
        assert select_mode(PromptMode.STANDARD, story_mode=False) == PromptMode.STANDARD


class TestBuildPrompt:
    def test_standard_fills_placeholders(self):
        prompt = build_prompt(PromptContext("What is 2+2?", MCQ_EASY, PromptMode.STANDARD))
        assert "What is 2+2?" in prompt
        assert "- Type: MCQ" in prompt
        assert "- Difficulty: Easy" in prompt
        assert "{" + "text}" not in prompt
        assert "NEVER the exact answer" in prompt

    def test_math_examples_keep_single_braces(self):
        prompt = build_prompt(PromptContext("q", MCQ_EASY, PromptMode.STANDARD))
        assert "$x_{i}$" in prompt
        assert "{{" not in prompt

    def test_regeneration_includes_previous_hints(self):
        prompt = build_prompt(PromptContext(
            "Find x", MCQ_EASY, PromptMode.REGENERATION, previous_hints="Hint 1: old hint",
        ))
        assert "Hint 1: old hint" in prompt
        assert "Find x" in prompt
        assert "4–6" in prompt

    def test_image_direct_has_no_text_slot(self):
        prompt = build_prompt(PromptContext(None, None, PromptMode.IMAGE_DIRECT))
        assert "screenshot of a problem" in prompt
        assert "Classification" not in prompt

    def test_missing_classification_is_unknown(self):
        prompt = build_prompt(PromptContext("text", None, PromptMode.STANDARD))
        assert "- Type: Unknown" in prompt
        assert "- Difficulty: Unknown" in prompt

    def test_story_mode_uses_story_format(self):
        prompt = build_prompt(PromptContext("Why do ships float?", MCQ_EASY, PromptMode.STANDARD), story_mode=True)
        assert "**Story:**" in prompt
        assert "**Concept:**" in prompt
        assert "Why do ships float?" in prompt

    def test_story_mode_ignored_for_image_direct(self):
        prompt = build_prompt(PromptContext(None, None, PromptMode.IMAGE_DIRECT), story_mode=True)
        assert "**Story:**" not in prompt


class TestTemplates:
    def test_all_templates_share_math_block(self):
        for template in (STANDARD_PROMPT, REGENERATION_PROMPT, IMAGE_HINT_PROMPT, STORY_PROMPT):
            assert MATH_FORMATTING in template

    def test_hint_templates_ask_for_hint_lines(self):
        for template in (STANDARD_PROMPT, REGENERATION_PROMPT, IMAGE_HINT_PROMPT):
            assert "Hint 1: ..." in template
