"""Neutral capability set every provider adapter may partially implement."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable

from .types import OperationRequest, OperationResult, UnknownOperationError

Options = Optional[Dict[str, Any]]


@runtime_checkable
class TextGeneration(Protocol):
    def generate_text(self, prompt: str, options: Options = None) -> OperationResult:
        ...


@runtime_checkable
class Chat(Protocol):
    def chat(self, messages: Optional[List[Dict[str, Any]]] = None, options: Options = None) -> OperationResult:
        ...


@runtime_checkable
class TextAnalysis(Protocol):
    def analyze_sentiment(self, text: str, options: Options = None) -> OperationResult:
        ...

    def summarize_text(self, text: str, options: Options = None) -> OperationResult:
        ...

    def translate_text(self, text: str, target_language: str, options: Options = None) -> OperationResult:
        ...

    def detect_language(self, text: str, options: Options = None) -> OperationResult:
        ...

    def classify_text(self, text: str, categories: Sequence[str], options: Options = None) -> OperationResult:
        ...

    def zero_shot_classification(self, text: str, labels: Sequence[str], options: Options = None) -> OperationResult:
        ...

    def complete_document(self, partial_text: str, options: Options = None) -> OperationResult:
        ...

    def generate_code(self, prompt: str, options: Options = None) -> OperationResult:
        ...

    def answer_question(self, context: str, question: str, options: Options = None) -> OperationResult:
        ...


@runtime_checkable
class Embeddings(Protocol):
    def generate_embeddings(self, text: str, options: Options = None) -> OperationResult:
        ...


@runtime_checkable
class ImageGeneration(Protocol):
    def generate_image(self, description: str, options: Options = None) -> OperationResult:
        ...

    def edit_image(self, image_path: str, options: Options = None) -> OperationResult:
        ...


@runtime_checkable
class Speech(Protocol):
    def generate_speech(self, text: str, options: Options = None) -> OperationResult:
        ...

    def transcribe_audio(self, audio_path: str, options: Options = None) -> OperationResult:
        ...


@runtime_checkable
class Transcription(Protocol):
    def transcribe_audio(self, audio_path: str, options: Options = None) -> OperationResult:
        ...


@runtime_checkable
class Moderation(Protocol):
    def moderate_content(self, text: str, options: Options = None) -> OperationResult:
        ...


@runtime_checkable
class BatchProcessing(Protocol):
    def submit_batch(self, requests: List[Dict[str, Any]], options: Options = None) -> OperationResult:
        ...

    def get_batch(self, token: str) -> OperationResult:
        ...

    def get_batch_results(self, token: str) -> OperationResult:
        ...

    def list_batches(
        self, before_id: Optional[str] = None, after_id: Optional[str] = None, limit: Optional[int] = None
    ) -> OperationResult:
        ...

    def cancel_batch(self, token: str) -> OperationResult:
        ...

    def delete_batch(self, token: str) -> OperationResult:
        ...


@runtime_checkable
class FileManagement(Protocol):
    def upload_file(self, path: str, display_name: Optional[str] = None, mime_type: Optional[str] = None) -> OperationResult:
        ...

    def get_file(self, name: str) -> OperationResult:
        ...

    def list_files(self, page_size: Optional[int] = None, page_token: Optional[str] = None) -> OperationResult:
        ...

    def delete_file(self, name: str) -> OperationResult:
        ...


@runtime_checkable
class ContextCaching(Protocol):
    def create_cache(self, contents: List[Dict[str, Any]], options: Options = None) -> OperationResult:
        ...

    def get_cache(self, name: str) -> OperationResult:
        ...

    def list_caches(self, page_size: Optional[int] = None, page_token: Optional[str] = None) -> OperationResult:
        ...

    def delete_cache(self, name: str) -> OperationResult:
        ...


OPERATIONS: Dict[str, type] = {
    "generate_text": TextGeneration,
    "chat": Chat,
    "analyze_sentiment": TextAnalysis,
    "summarize_text": TextAnalysis,
    "translate_text": TextAnalysis,
    "detect_language": TextAnalysis,
    "classify_text": TextAnalysis,
    "zero_shot_classification": TextAnalysis,
    "complete_document": TextAnalysis,
    "generate_code": TextAnalysis,
    "answer_question": TextAnalysis,
    "generate_embeddings": Embeddings,
    "generate_image": ImageGeneration,
    "edit_image": ImageGeneration,
    "generate_speech": Speech,
    "transcribe_audio": Transcription,
    "moderate_content": Moderation,
    "submit_batch": BatchProcessing,
    "get_batch": BatchProcessing,
    "get_batch_results": BatchProcessing,
    "list_batches": BatchProcessing,
    "cancel_batch": BatchProcessing,
    "delete_batch": BatchProcessing,
    "upload_file": FileManagement,
    "get_file": FileManagement,
    "list_files": FileManagement,
    "delete_file": FileManagement,
    "create_cache": ContextCaching,
    "get_cache": ContextCaching,
    "list_caches": ContextCaching,
    "delete_cache": ContextCaching,
}


def supports(adapter: Any, operation: str) -> bool:
    capability = OPERATIONS.get(operation)
    return capability is not None and isinstance(adapter, capability)


def dispatch(adapter: Any, operation: str, *args: Any, **kwargs: Any) -> OperationResult:
    """Invokes a neutral operation by name on an adapter."""
    if operation not in OPERATIONS:
        raise UnknownOperationError(f"Unknown operation: {operation}")
    if not supports(adapter, operation):
        name = getattr(adapter, "name", type(adapter).__name__)
        raise UnknownOperationError(f"Provider '{name}' does not support {operation}")
    return getattr(adapter, operation)(*args, **kwargs)


def execute(adapter: Any, request: OperationRequest) -> OperationResult:
    """Runs a neutral OperationRequest; tuple payloads are spread as positional args."""
    args = request.payload if isinstance(request.payload, tuple) else (request.payload,)
    kwargs = {"options": request.options} if request.options else {}
    return dispatch(adapter, request.operation, *args, **kwargs)
