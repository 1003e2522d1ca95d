"""
Text encoding and decoding.

Provides the Tokenizer class: a typed wrapper that owns one engine handle,
marshals Python strings and id lists across the engine boundary, and
copies every result into owned Python objects.
"""

import threading
from collections.abc import Sequence
from typing import Any

from .._logging import scoped_logger
from ..engine import get_engine
from ..engine.protocol import NOT_FOUND, EngineHandle, TokenizerEngine
from ..exceptions import StateError, ValidationError
from ._bindings import (
    call_collect_added_tokens,
    call_create,
    call_decode,
    call_encode,
    call_encode_batch,
    call_free,
    call_get_vocab_size,
    call_id_to_token,
    call_token_to_id,
)
from .encoding import AddedToken, Encoding

logger = scoped_logger("tokenizer")

_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1


def _resolve_engine(engine: TokenizerEngine | str | None) -> TokenizerEngine:
    if engine is None or isinstance(engine, str):
        return get_engine(engine)
    if not isinstance(engine, TokenizerEngine):
        raise ValidationError(
            f"engine must be an engine name or TokenizerEngine, got {type(engine).__name__}",
            details={"param": "engine", "type": type(engine).__name__},
        )
    return engine


def _check_ids(ids: Any) -> list[int]:
    if isinstance(ids, Encoding):
        return list(ids.ids)
    if not isinstance(ids, (list, tuple)):
        raise ValidationError(
            f"ids must be list[int], tuple[int, ...] or Encoding, got {type(ids).__name__}",
            details={"param": "ids", "type": type(ids).__name__},
        )
    for token_id in ids:
        if not isinstance(token_id, int) or isinstance(token_id, bool):
            raise ValidationError(
                f"token ids must be int, got {type(token_id).__name__}",
                details={"param": "ids", "type": type(token_id).__name__},
            )
        if not _INT32_MIN <= token_id <= _INT32_MAX:
            raise ValidationError(
                f"token id {token_id} is outside the int32 range",
                details={"param": "ids", "value": token_id},
            )
    return list(ids)


def _check_token_id(token_id: Any) -> int:
    if not isinstance(token_id, int) or isinstance(token_id, bool):
        raise ValidationError(
            f"token_id must be int, got {type(token_id).__name__}",
            details={"param": "token_id", "type": type(token_id).__name__},
        )
    if not _INT32_MIN <= token_id <= _INT32_MAX:
        raise ValidationError(
            f"token id {token_id} is outside the int32 range",
            details={"param": "token_id", "value": token_id},
        )
    return token_id


def _to_utf8(value: str, param: str) -> bytes:
    """Encode text for the engine; lone surrogates are not valid UTF-8."""
    try:
        return value.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise ValidationError(
            f"{param} is not encodable as UTF-8: {exc.reason}",
            details={"param": param},
        ) from exc


class Tokenizer:
    """
    Text-to-token encoder and token-to-text decoder over one engine handle.

    The tokenizer exclusively owns its handle and destroys it exactly once,
    on ``close()``, on leaving a ``with`` block, or when garbage collected.
    All calls on the handle are serialized by a per-tokenizer lock, so a
    single instance may be shared between threads.

    Attributes
    ----------
    engine : TokenizerEngine
        The engine that owns the handle.
    vocab_size : int
        Number of tokens in the vocabulary, added tokens included.

    Example:
        >>> tokenizer = Tokenizer.from_json(open("tokenizer.json").read())
        >>> enc = tokenizer.encode("hello world")
        >>> tokenizer.decode(enc.ids)
        'hello world'
    """

    __slots__ = (
        "_engine",
        "_ptr",
        "_added_tokens",
        "_lock",
        "__weakref__",
    )

    def __init__(
        self,
        json_content: str | bytes,
        *,
        engine: TokenizerEngine | str | None = None,
    ):
        """
        Create a tokenizer from serialized configuration.

        Args:
            json_content: The tokenizer configuration (tokenizer.json content)
                as string or bytes. Passed to the engine unparsed.
            engine: Engine instance or engine name. Defaults to
                ``TOKBRIDGE_ENGINE``, then "huggingface".

        Raises
        ------
            TokenizerError: If the engine rejects the configuration.
            EngineError: If the engine cannot be set up.
            ValidationError: If json_content is not str or bytes.
        """
        if isinstance(json_content, str):
            json_bytes = _to_utf8(json_content, "json_content")
        elif isinstance(json_content, (bytes, bytearray)):
            json_bytes = bytes(json_content)
        else:
            raise ValidationError(
                f"json_content must be str or bytes, got {type(json_content).__name__}",
                details={"param": "json_content", "type": type(json_content).__name__},
            )

        self._ptr: EngineHandle | None = None
        self._lock = threading.Lock()
        self._engine = _resolve_engine(engine)

        logger.debug(
            "Creating tokenizer from JSON",
            extra={"engine": self._engine.name, "json_len": len(json_bytes)},
        )
        self._ptr = call_create(self._engine, json_bytes)
        try:
            self._added_tokens = tuple(call_collect_added_tokens(self._engine, self._ptr))
        except BaseException:
            self._free_handle()
            raise
        logger.debug(
            "Tokenizer created",
            extra={"engine": self._engine.name, "added_tokens": len(self._added_tokens)},
        )

    @classmethod
    def from_json(
        cls,
        json_content: str | bytes,
        *,
        engine: TokenizerEngine | str | None = None,
    ) -> "Tokenizer":
        """
        Create a tokenizer directly from JSON content.

        Args:
            json_content: The tokenizer.json content as string or bytes.
            engine: Engine instance or engine name.

        Returns
        -------
            A new Tokenizer instance.

        Raises
        ------
            TokenizerError: If the JSON content is invalid.

        Example
        -------
            >>> tok = Tokenizer.from_json(blob, engine="native")
        """
        return cls(json_content, engine=engine)

    from_config = from_json

    @property
    def _handle(self) -> EngineHandle:
        """Get the internal handle, raising if closed or moved."""
        if self._ptr is None:
            raise StateError("Tokenizer is closed")
        return self._ptr

    def _free_handle(self) -> None:
        """Free the internal handle."""
        if getattr(self, "_ptr", None) is not None:
            with self._lock:
                ptr, self._ptr = self._ptr, None
                if ptr is not None:
                    call_free(self._engine, ptr)

    def close(self) -> None:
        """
        Release the engine handle.

        After calling close(), the tokenizer cannot be used. Safe to call
        multiple times (idempotent).
        """
        self._free_handle()

    @property
    def closed(self) -> bool:
        """True once the handle was released or moved."""
        return self._ptr is None

    def transfer(self) -> "Tokenizer":
        """
        Move handle ownership to a new Tokenizer.

        The returned tokenizer owns the handle and the cached added-token
        table; this tokenizer is left holding no handle, so closing or
        collecting it releases nothing.

        Raises
        ------
            StateError: If this tokenizer is already closed.
        """
        with self._lock:
            if self._ptr is None:
                raise StateError("Tokenizer is closed")
            instance = type(self).__new__(type(self))
            instance._engine = self._engine
            instance._lock = threading.Lock()
            instance._added_tokens = self._added_tokens
            instance._ptr, self._ptr = self._ptr, None
        return instance

    def __enter__(self) -> "Tokenizer":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit - calls close()."""
        self.close()

    def __del__(self):
        try:
            self._free_handle()
        except Exception:
            pass

    def __repr__(self) -> str:
        state = "closed" if self._ptr is None else "open"
        return f"Tokenizer(engine={self._engine.name!r}, {state})"

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def engine(self) -> TokenizerEngine:
        """The engine that owns the handle."""
        return self._engine

    @property
    def vocab_size(self) -> int:
        """Number of tokens in the vocabulary."""
        return self.get_vocab_size()

    # =========================================================================
    # Core Encoding/Decoding
    # =========================================================================

    def encode(self, text: str, add_special_tokens: bool = False) -> Encoding:
        """
        Convert text to token IDs.

        Args:
            text: Text to tokenize. Any UTF-8 text is valid input.
            add_special_tokens: If True, let the engine insert model-specific
                boundary tokens (e.g., ``[CLS]``/``[SEP]``).

        Returns
        -------
            Encoding with ids and an attention mask of the same length.

        Raises
        ------
            ValidationError: If text is not a str.
            TokenizerError: If encoding fails.
            StateError: If the tokenizer is closed.
        """
        if not isinstance(text, str):
            raise ValidationError(
                f"text must be str, got {type(text).__name__}",
                details={"param": "text", "type": type(text).__name__},
            )
        text_bytes = _to_utf8(text, "text")
        with self._lock:
            return call_encode(self._engine, self._handle, text_bytes, add_special_tokens)

    def encode_batch(
        self, texts: Sequence[str], add_special_tokens: bool = False
    ) -> list[Encoding]:
        """
        Convert a batch of texts to token IDs in one engine call.

        The engine may encode entries in parallel; output position i always
        corresponds to ``texts[i]``, and each entry equals ``encode(texts[i])``.

        Args:
            texts: Texts to tokenize.
            add_special_tokens: If True, insert boundary tokens in every entry.

        Returns
        -------
            One Encoding per input text, in input order.

        Raises
        ------
            ValidationError: If texts is not a list/tuple of str.
            TokenizerError: If encoding fails.
            StateError: If the tokenizer is closed.
        """
        if not isinstance(texts, (list, tuple)):
            raise ValidationError(
                f"texts must be list[str], got {type(texts).__name__}",
                details={"param": "texts", "type": type(texts).__name__},
            )
        for text in texts:
            if not isinstance(text, str):
                raise ValidationError(
                    f"texts must contain only str, got {type(text).__name__}",
                    details={"param": "texts", "type": type(text).__name__},
                )

        with self._lock:
            handle = self._handle
            if not texts:
                return []
            # Marshal Python strings to C
            text_bytes_list = [_to_utf8(t, "texts") for t in texts]
            logger.debug(
                "Encoding batch",
                extra={"engine": self._engine.name, "num_texts": len(text_bytes_list)},
            )
            return call_encode_batch(self._engine, handle, text_bytes_list, add_special_tokens)

    def decode(
        self,
        ids: Encoding | Sequence[int],
        skip_special_tokens: bool = False,
    ) -> str:
        """
        Convert token IDs back to text.

        Args:
            ids: Token IDs to decode (list, tuple or Encoding).
            skip_special_tokens: If True, omit added special tokens from output.

        Returns
        -------
            Decoded text string.

        Raises
        ------
            ValidationError: If ids are not int32 values.
            TokenizerError: If decoding fails.
            StateError: If the tokenizer is closed.
        """
        token_list = _check_ids(ids)
        # decode + get_decode_str share handle state; keep them in one critical section
        with self._lock:
            return call_decode(self._engine, self._handle, token_list, skip_special_tokens)

    def count_tokens(self, text: str, add_special_tokens: bool = False) -> int:
        """
        Count the number of tokens in text.

        Example:
            >>> if tokenizer.count_tokens(prompt) > 512:
            ...     print("Prompt too long!")
        """
        return len(self.encode(text, add_special_tokens=add_special_tokens))

    # =========================================================================
    # Vocabulary Access
    # =========================================================================

    def get_vocab_size(self) -> int:
        """
        Number of tokens in the vocabulary, added tokens included.

        A zero-size vocabulary means the engine is corrupt or unconfigured;
        that is reported as an AssertionError, not a recoverable error.
        """
        with self._lock:
            size = call_get_vocab_size(self._engine, self._handle)
        assert size > 0, "engine reported an empty vocabulary"
        return size

    def get_added_tokens(self) -> list[AddedToken]:
        """
        Tokens added to the vocabulary outside the base model.

        Collected once when the tokenizer was created; every call returns a
        new list with the same entries in the same order.
        """
        if self._ptr is None:
            raise StateError("Tokenizer is closed")
        return list(self._added_tokens)

    def id_to_token(self, token_id: int) -> str:
        """
        Get the string representation of a token ID.

        Args:
            token_id: The token ID to convert.

        Returns
        -------
            The token string, or "" if the engine has no token for the ID.

        Example:
            >>> tokenizer.id_to_token(1)
            'hello'

        Raises
        ------
            ValidationError: If token_id is not an int in the int32 range.
        """
        token_id = _check_token_id(token_id)
        with self._lock:
            return call_id_to_token(self._engine, self._handle, token_id)

    def token_to_id(self, token: str) -> int:
        """
        Get the ID of a token string.

        Args:
            token: The token string to convert.

        Returns
        -------
            The token ID, or -1 if the token is not in the vocabulary.
            Callers must check for -1 explicitly.

        Example:
            >>> tokenizer.token_to_id("hello")
            1
            >>> tokenizer.token_to_id("missing")
            -1
        """
        if not isinstance(token, str):
            raise ValidationError(
                f"token must be str, got {type(token).__name__}",
                details={"param": "token", "type": type(token).__name__},
            )
        with self._lock:
            return call_token_to_id(self._engine, self._handle, _to_utf8(token, "token"))

    def __contains__(self, token: object) -> bool:
        """Check if a string exists as a single token in the vocabulary."""
        if not isinstance(token, str):
            return False
        return self.token_to_id(token) != NOT_FOUND

    def convert_ids_to_tokens(self, ids: Sequence[int]) -> list[str]:
        """Convert a list of token IDs to their string representations.

        Args:
            ids: Token IDs to convert.
        """
        return [self.id_to_token(token_id) for token_id in ids]

    def convert_tokens_to_ids(self, tokens: Sequence[str]) -> list[int]:
        """Convert a list of token strings to their IDs (-1 for unknown tokens).

        Args:
            tokens: Token strings to convert.
        """
        return [self.token_to_id(token) for token in tokens]
