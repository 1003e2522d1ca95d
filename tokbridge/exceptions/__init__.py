"""
Tokbridge exceptions.

This module defines the exception hierarchy for tokbridge:

    TokbridgeError (base)
    ├── TokenizerError - The engine failed to create, encode or decode
    ├── EngineError - No usable engine (library missing, symbol missing)
    ├── StateError - Invalid object state (closed or moved-from tokenizer)
    └── ValidationError - Invalid parameter value
"""

from .exceptions import (
    EngineError,
    StateError,
    TokbridgeError,
    TokenizerError,
    ValidationError,
)

# =============================================================================
# Public API - See tokbridge/__init__.py for documentation mapping guidelines
# =============================================================================
__all__ = [
    # Base
    "TokbridgeError",
    # Tokenizer
    "TokenizerError",
    # Engine
    "EngineError",
    # State
    "StateError",
    # Validation
    "ValidationError",
]
