"""Heuristic question-type and difficulty detection for extracted text."""
from __future__ import annotations

import re

from hintify.models import Classification, Difficulty, QuestionType

_MCQ_PATTERN = re.compile(r"\([A-D]\)|\b\d\)")
_TASK_VERBS = re.compile(r"\b(solve|find|calculate|prove|evaluate)\b", re.IGNORECASE)


def classify_question(text: str) -> QuestionType:
    # MCQ wins over Descriptive: option lists usually end with a "?" too.
    if _MCQ_PATTERN.search(text):
        return QuestionType.MCQ
    if "?" in text or _TASK_VERBS.search(text):
        return QuestionType.DESCRIPTIVE
    return QuestionType.NOT_A_QUESTION


def detect_difficulty(text: str) -> Difficulty:
    word_count = len(text.split())
    if word_count < 15:
        return Difficulty.EASY
    if word_count < 40:
        return Difficulty.MEDIUM
    return Difficulty.HARD


def classify(text: str) -> Classification:
    return Classification(
        question_type=classify_question(text),
        difficulty=detect_difficulty(text),
    )
