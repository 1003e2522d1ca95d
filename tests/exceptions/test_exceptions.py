"""
Tests for the tokbridge exception hierarchy.

Tests that:
1. All error types are accessible and properly categorized
2. Every error carries a stable code and structured details
3. Engine and wrapper failures surface as the documented types
"""

import pytest

from tests.fixtures import WORDLEVEL_TOKENIZER_JSON


class TestErrorTypes:
    """Tests for error type hierarchy and accessibility."""

    def test_base_error_importable(self, tokbridge):
        """TokbridgeError is importable from tokbridge."""
        assert hasattr(tokbridge, "TokbridgeError")
        assert issubclass(tokbridge.TokbridgeError, Exception)

    def test_all_errors_share_base(self):
        """Every tokbridge error derives from TokbridgeError."""
        from tokbridge.exceptions import (
            EngineError,
            StateError,
            TokbridgeError,
            TokenizerError,
            ValidationError,
        )

        for cls in (TokenizerError, EngineError, StateError, ValidationError):
            assert issubclass(cls, TokbridgeError), cls.__name__

    def test_error_inheritance_chain(self):
        """Error classes have proper inheritance for exception handling."""
        from tokbridge.exceptions import EngineError, StateError, TokenizerError, ValidationError

        assert issubclass(TokenizerError, RuntimeError)
        assert issubclass(EngineError, RuntimeError)
        assert issubclass(StateError, RuntimeError)
        assert issubclass(ValidationError, ValueError)

    def test_package_reexports(self, tokbridge):
        """Exceptions are reachable from the top-level package."""
        from tokbridge import exceptions

        for name in exceptions.__all__:
            assert getattr(tokbridge, name) is getattr(exceptions, name)


class TestErrorAttributes:
    """Tests for code/details/repr."""

    @pytest.mark.parametrize(
        "name,code",
        [
            ("TokbridgeError", "INTERNAL_ERROR"),
            ("TokenizerError", "TOKENIZER_ERROR"),
            ("EngineError", "ENGINE_UNAVAILABLE"),
            ("StateError", "STATE_ERROR"),
            ("ValidationError", "INVALID_ARGUMENT"),
        ],
    )
    def test_default_codes(self, name, code):
        from tokbridge import exceptions

        error = getattr(exceptions, name)("boom")
        assert error.code == code
        assert error.details == {}
        assert str(error) == "boom"

    def test_custom_code_and_details(self):
        from tokbridge.exceptions import EngineError

        error = EngineError("gone", code="ENGINE_SYMBOL_MISSING", details={"symbol": "x"})
        assert error.code == "ENGINE_SYMBOL_MISSING"
        assert error.details == {"symbol": "x"}

    def test_repr(self):
        from tokbridge.exceptions import StateError

        assert repr(StateError("Tokenizer is closed")) == (
            "StateError('Tokenizer is closed', code='STATE_ERROR')"
        )


class TestRaisedErrors:
    """Errors raised through the public API."""

    def test_invalid_config_is_tokenizer_error(self, tokbridge):
        """A malformed config raises TokenizerError chained from the engine failure."""
        with pytest.raises(tokbridge.TokenizerError) as exc_info:
            tokbridge.Tokenizer.from_json('{"model": 42}')
        assert exc_info.value.__cause__ is not None

    def test_catch_all(self, tokbridge):
        """TokbridgeError catches every tokbridge failure."""
        with pytest.raises(tokbridge.TokbridgeError):
            tokbridge.Tokenizer.from_json("")

    def test_validation_error_is_value_error(self, tokenizer):
        """Validation errors can be caught as ValueError."""
        with pytest.raises(ValueError):
            tokenizer.encode(None)

    def test_validation_details(self, tokenizer):
        """Validation errors name the offending parameter."""
        from tokbridge.exceptions import ValidationError

        with pytest.raises(ValidationError) as exc_info:
            tokenizer.decode("hello")
        assert exc_info.value.details == {"param": "ids", "type": "str"}

    def test_missing_token_is_not_error(self, tokenizer):
        """A lookup miss returns -1 rather than raising."""
        assert tokenizer.token_to_id("missing") == -1

    def test_state_error_after_transfer(self, tokbridge):
        """The moved-from tokenizer reports StateError."""
        tok = tokbridge.Tokenizer.from_json(WORDLEVEL_TOKENIZER_JSON)
        moved = tok.transfer()
        try:
            with pytest.raises(tokbridge.StateError):
                tok.decode([1])
        finally:
            moved.close()
