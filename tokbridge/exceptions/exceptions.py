"""
Tokbridge exceptions.

This module defines the exception hierarchy for tokbridge:

    TokbridgeError (base)
    ├── TokenizerError - The engine failed to create, encode or decode
    ├── EngineError - No usable engine (library missing, symbol missing)
    ├── StateError - Invalid object state (closed or moved-from tokenizer)
    └── ValidationError - Invalid parameter value

Usage:
    try:
        tok = Tokenizer.from_json(blob)
    except tokbridge.TokenizerError as e:
        print(f"Bad tokenizer config: {e}")
    except tokbridge.TokbridgeError as e:
        print(f"Error {e.code}: {e}")
        print(f"Details: {e.details}")

Looking up a token that is not in the vocabulary is not an error:
``Tokenizer.token_to_id`` returns ``-1`` for it.
"""

from typing import Any

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


class TokbridgeError(Exception):
    """
    Base exception for all tokbridge errors.

    All tokbridge-specific exceptions inherit from this class, enabling:
    - Catch-all handling: ``except tokbridge.TokbridgeError``
    - Stable string-based error codes for programmatic handling
    - Structured details for debugging and logging

    Attributes
    ----------
    message : str
        Human-readable error description.
    code : str
        Stable, string-based error code (e.g., "TOKENIZER_ERROR").
        Use this for programmatic error handling.
    details : dict[str, Any]
        Structured context (e.g., {"engine": "native", "path": "..."}).
    """

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.details = details or {}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.args[0]!r}, code={self.code!r})"


# =============================================================================
# Tokenizer Errors
# =============================================================================


class TokenizerError(TokbridgeError, RuntimeError):
    """
    Error reported by the tokenization engine.

    Raised when the engine rejects an operation. Common causes:
    - Malformed tokenizer configuration blob
    - Token ids outside the vocabulary passed to decode
    - Engine-internal encoding/decoding failures
    """

    def __init__(
        self,
        message: str,
        code: str = "TOKENIZER_ERROR",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code, details)


# =============================================================================
# Engine Errors
# =============================================================================


class EngineError(TokbridgeError, RuntimeError):
    """
    No usable tokenization engine.

    Raised when an engine cannot be set up. Common causes:
    - Shared library not found (set TOKBRIDGE_LIBRARY)
    - Library is missing one of the ``tokenizers_*`` symbols
    - Unknown engine name in TOKBRIDGE_ENGINE
    """

    def __init__(
        self,
        message: str,
        code: str = "ENGINE_UNAVAILABLE",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code, details)


# =============================================================================
# State Errors
# =============================================================================


class StateError(TokbridgeError, RuntimeError):
    """
    Invalid object state error.

    Raised when an operation is attempted on an object in an invalid state:
    - Using a closed tokenizer
    - Using a tokenizer whose handle was moved with ``transfer()``
    - Releasing an engine result buffer that is not live
    """

    def __init__(
        self,
        message: str,
        code: str = "STATE_ERROR",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code, details)


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(TokbridgeError, ValueError):
    """
    Invalid parameter value.

    Raised when a function receives an argument of the wrong type or an
    inappropriate value (e.g., a token id outside the int32 range).

    This exception inherits from both TokbridgeError and ValueError, so both work::

        except tokbridge.TokbridgeError:   # catches all tokbridge errors
        except ValueError:                 # catches validation errors (Pythonic)

    Example:
        >>> tokenizer.decode([2**40])
        ValidationError: token id 1099511627776 is outside the int32 range
    """

    def __init__(
        self,
        message: str,
        code: str = "INVALID_ARGUMENT",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code, details)
