"""
Engine module - Tokenization engines behind an opaque handle.

Provides:
- TokenizerEngine: Protocol every engine implements
- HuggingFaceEngine: In-process engine on the ``tokenizers`` package
- NativeEngine: Shared library exporting the ``tokenizers_*`` C API
- get_engine: Engine selection by name or ``TOKBRIDGE_ENGINE``
"""

import os

from ..exceptions import ValidationError
from ._native import NativeEngine
from .huggingface import HuggingFaceEngine
from .protocol import (
    NOT_FOUND,
    EngineHandle,
    IterateAddedVocabCallback,
    TokenizerEncodeResult,
    TokenizerEngine,
)

DEFAULT_ENGINE = "huggingface"

_ENGINES = {
    "huggingface": HuggingFaceEngine,
    "native": NativeEngine,
}


def get_engine(name: str | None = None) -> TokenizerEngine:
    """Create an engine by name.

    Args:
        name: "huggingface" or "native". Defaults to ``TOKBRIDGE_ENGINE``,
            then "huggingface".

    Raises
    ------
        ValidationError: If the name is not a known engine.
        EngineError: If the engine cannot be set up (e.g., missing library).
    """
    if name is None:
        name = os.environ.get("TOKBRIDGE_ENGINE") or DEFAULT_ENGINE
    factory = _ENGINES.get(name.lower())
    if factory is None:
        raise ValidationError(
            f"engine must be one of {sorted(_ENGINES)}, got {name!r}",
            details={"param": "engine", "value": name},
        )
    return factory()


# =============================================================================
# Public API - See tokbridge/__init__.py for documentation mapping guidelines
# =============================================================================
__all__ = [
    # Protocol
    "TokenizerEngine",
    "EngineHandle",
    "TokenizerEncodeResult",
    "IterateAddedVocabCallback",
    "NOT_FOUND",
    # Engines
    "HuggingFaceEngine",
    "NativeEngine",
    "get_engine",
]
