"""
Chunking methods and their parameters.

Each chunking method accepts a different set of knobs, so parameters are
modeled as one small frozen dataclass per method rather than a single
record with optional fields. The `method` attribute tags each variant:

    FixedParams      -> chunk_size, overlap          (characters)
    RecursiveParams  -> chunk_size, overlap          (characters)
    TokenParams      -> token_count, overlap         (words)
    SentenceParams   -> sentence_count, overlap      (sentences)
    SemanticParams   -> similarity_threshold         (0..1)

Defaults match what the experiments UI shipped with.
"""

from dataclasses import asdict, dataclass, fields
from enum import Enum
from typing import Any, ClassVar, Union


class ChunkingMethod(str, Enum):
    """Available chunking methods."""

    FIXED = "fixed"
    RECURSIVE = "recursive"
    TOKEN = "token"
    SENTENCE = "sentence"
    SEMANTIC = "semantic"


def _check_window(name: str, size: int, overlap: int) -> None:
    if size < 1:
        raise ValueError(f"{name} must be >= 1, got {size}")
    if overlap < 0:
        raise ValueError(f"overlap must be >= 0, got {overlap}")


@dataclass(frozen=True)
class FixedParams:
    """Character window with a fixed step."""

    method: ClassVar[ChunkingMethod] = ChunkingMethod.FIXED

    chunk_size: int = 1000
    overlap: int = 200

    def __post_init__(self) -> None:
        _check_window("chunk_size", self.chunk_size, self.overlap)


@dataclass(frozen=True)
class RecursiveParams:
    """Character window that prefers paragraph/sentence/word boundaries."""

    method: ClassVar[ChunkingMethod] = ChunkingMethod.RECURSIVE

    chunk_size: int = 1000
    overlap: int = 200

    def __post_init__(self) -> None:
        _check_window("chunk_size", self.chunk_size, self.overlap)


@dataclass(frozen=True)
class TokenParams:
    """Window of whitespace-delimited words."""

    method: ClassVar[ChunkingMethod] = ChunkingMethod.TOKEN

    token_count: int = 256
    overlap: int = 50

    def __post_init__(self) -> None:
        _check_window("token_count", self.token_count, self.overlap)


@dataclass(frozen=True)
class SentenceParams:
    """Groups of consecutive sentences."""

    method: ClassVar[ChunkingMethod] = ChunkingMethod.SENTENCE

    sentence_count: int = 5
    overlap: int = 1

    def __post_init__(self) -> None:
        _check_window("sentence_count", self.sentence_count, self.overlap)


@dataclass(frozen=True)
class SemanticParams:
    """Paragraph merging driven by lexical similarity."""

    method: ClassVar[ChunkingMethod] = ChunkingMethod.SEMANTIC

    similarity_threshold: float = 0.5

    def __post_init__(self) -> None:
        if self.similarity_threshold < 0:
            raise ValueError(
                f"similarity_threshold must be >= 0, got {self.similarity_threshold}"
            )


ChunkParams = Union[FixedParams, RecursiveParams, TokenParams, SentenceParams, SemanticParams]

PARAMS_BY_METHOD: dict[ChunkingMethod, type] = {
    ChunkingMethod.FIXED: FixedParams,
    ChunkingMethod.RECURSIVE: RecursiveParams,
    ChunkingMethod.TOKEN: TokenParams,
    ChunkingMethod.SENTENCE: SentenceParams,
    ChunkingMethod.SEMANTIC: SemanticParams,
}


def params_for(method: ChunkingMethod | str, **values: Any) -> ChunkParams:
    """
    Build the parameter variant for a method.

    Keys that do not belong to the method are ignored, so a shared
    settings dict can be passed to every method.

    Raises:
        ValueError: If the method is unknown or a value is out of range
    """
    method = ChunkingMethod(method)
    params_class = PARAMS_BY_METHOD[method]
    names = {f.name for f in fields(params_class)}
    return params_class(**{k: v for k, v in values.items() if k in names})


def params_to_dict(params: ChunkParams) -> dict[str, Any]:
    """Serialize params, including the method tag."""
    return {"method": params.method.value, **asdict(params)}


def params_from_dict(data: dict[str, Any]) -> ChunkParams:
    """Inverse of params_to_dict."""
    values = dict(data)
    method = values.pop("method")
    return params_for(method, **values)
