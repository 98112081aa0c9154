"""Prompt builders for the text-analysis operations."""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from .types import OperationResult

SENTIMENT_LABELS = ("Positive", "Neutral", "Negative")


def build_summary_prompt(text: str) -> str:
    return f"Summarize the following text:\n\n{text}"


def build_translation_prompt(text: str, target_language: str) -> str:
    return f"Translate the following text to {target_language}:\n\n{text}"


def build_sentiment_prompt(text: str, labels: Sequence[str] = SENTIMENT_LABELS) -> str:
    return (
        f"Classify the sentiment of the text as one of: {', '.join(labels)}. "
        "Answer with the label only.\n\n"
        f"Text:\n{text}"
    )


def build_language_prompt(text: str) -> str:
    return (
        "Detect the language of the following text. "
        "Answer with the ISO 639-1 code and the language name only.\n\n"
        f"Text:\n{text}"
    )


def build_classification_prompt(text: str, categories: Sequence[str]) -> str:
    return (
        f"Classify the text into exactly one of these categories: {', '.join(categories)}. "
        "Answer with the category only.\n\n"
        f"Text:\n{text}"
    )


def build_zero_shot_prompt(text: str, labels: Sequence[str]) -> str:
    return (
        "For each candidate label, give a score between 0 and 1 for how well it describes the text. "
        'Return a JSON object mapping label to score.\n\n'
        f"Labels: {', '.join(labels)}\n\n"
        f"Text:\n{text}"
    )


def build_completion_prompt(partial_text: str) -> str:
    return f"Continue the following document naturally, keeping its tone and format:\n\n{partial_text}"


def build_question_prompt(context: str, question: str) -> str:
    return f"Answer the question based on the context below:\n\nContext: {context}\n\nQuestion: {question}"


class PromptOperationsMixin:
    """Implements the text-analysis capability on top of generate_text."""

    code_temperature = 0.2

    def summarize_text(self, text: str, options: Optional[Dict[str, Any]] = None) -> OperationResult:
        return self.generate_text(build_summary_prompt(text), options)

    def translate_text(
        self, text: str, target_language: str, options: Optional[Dict[str, Any]] = None
    ) -> OperationResult:
        return self.generate_text(build_translation_prompt(text, target_language), options)

    def analyze_sentiment(self, text: str, options: Optional[Dict[str, Any]] = None) -> OperationResult:
        opts = dict(options or {})
        labels = opts.pop("labels", None) or SENTIMENT_LABELS
        return self.generate_text(build_sentiment_prompt(text, labels), opts)

    def detect_language(self, text: str, options: Optional[Dict[str, Any]] = None) -> OperationResult:
        return self.generate_text(build_language_prompt(text), options)

    def classify_text(
        self, text: str, categories: Sequence[str], options: Optional[Dict[str, Any]] = None
    ) -> OperationResult:
        return self.generate_text(build_classification_prompt(text, categories), options)

    def zero_shot_classification(
        self, text: str, labels: Sequence[str], options: Optional[Dict[str, Any]] = None
    ) -> OperationResult:
        return self.generate_text(build_zero_shot_prompt(text, labels), options)

    def complete_document(self, partial_text: str, options: Optional[Dict[str, Any]] = None) -> OperationResult:
        return self.generate_text(build_completion_prompt(partial_text), options)

    def answer_question(
        self, context: str, question: str, options: Optional[Dict[str, Any]] = None
    ) -> OperationResult:
        return self.generate_text(build_question_prompt(context, question), options)

    def generate_code(self, prompt: str, options: Optional[Dict[str, Any]] = None) -> OperationResult:
        opts = dict(options or {})
        opts.setdefault("temperature", self.code_temperature)
        return self.generate_text(prompt, opts)
