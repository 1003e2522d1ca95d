"""
In-process engine built on the Hugging Face ``tokenizers`` package.

Implements the engine protocol with the same buffer contract a native
library has: result buffers are allocated by the engine, stay alive until
``free_encode_results`` releases them, and decoded strings are served from
a per-handle buffer that the next decode overwrites.
"""

import ctypes
import os
import threading
from typing import Any

from tokenizers import Tokenizer as _HFTokenizer

from .._logging import scoped_logger
from ..exceptions import StateError, TokenizerError
from .protocol import NOT_FOUND, TokenizerEncodeResult

logger = scoped_logger("engine")


class _HandleState:
    """Engine-side state behind one handle."""

    __slots__ = ("tokenizer", "decode_buf", "decode_len", "token_buf", "token_len")

    def __init__(self, tokenizer: _HFTokenizer):
        self.tokenizer: _HFTokenizer | None = tokenizer
        self.decode_buf = ctypes.create_string_buffer(0)
        self.decode_len = 0
        self.token_buf = ctypes.create_string_buffer(0)
        self.token_len = 0


def _state(handle: Any) -> _HandleState:
    if not isinstance(handle, _HandleState) or handle.tokenizer is None:
        raise StateError("Invalid or destroyed tokenizer handle")
    return handle


class HuggingFaceEngine:
    """Engine that runs ``tokenizers.Tokenizer`` in-process.

    Args:
        parallelism: Value exported as ``TOKENIZERS_PARALLELISM`` before
            handles are created. Defaults to ``TOKBRIDGE_PARALLELISM`` when
            set; otherwise the variable is left untouched.
    """

    name = "huggingface"

    def __init__(self, parallelism: bool | None = None):
        if parallelism is None:
            env_value = os.environ.get("TOKBRIDGE_PARALLELISM")
            if env_value is not None:
                os.environ["TOKENIZERS_PARALLELISM"] = env_value.lower()
        else:
            os.environ["TOKENIZERS_PARALLELISM"] = "true" if parallelism else "false"
        # Live result buffers keyed by the address of their id array
        self._live: dict[int, tuple[ctypes.Array, ctypes.Array]] = {}
        self._live_lock = threading.Lock()

    def __repr__(self) -> str:
        return "HuggingFaceEngine()"

    @property
    def live_buffers(self) -> int:
        """Number of encode results allocated and not yet released."""
        with self._live_lock:
            return len(self._live)

    def create(self, json: bytes) -> _HandleState:
        try:
            tokenizer = _HFTokenizer.from_str(json.decode("utf-8"))
        except Exception as exc:
            raise TokenizerError(
                f"Failed to create tokenizer from JSON: {exc}",
                details={"json_len": len(json)},
            ) from exc
        return _HandleState(tokenizer)

    def iterate_added_vocab(self, handle: Any, callback: Any, user_data: Any = None) -> None:
        tokenizer = _state(handle).tokenizer
        for token_id, added in tokenizer.get_added_tokens_decoder().items():
            callback(added.content.encode("utf-8"), token_id, user_data)

    def _store(self, ids: list[int], attention_mask: list[int]) -> TokenizerEncodeResult:
        if len(ids) != len(attention_mask):
            raise TokenizerError("ids and attention_mask should be the same length")
        n = len(ids)
        ids_arr = (ctypes.c_int * n)(*ids)
        mask_arr = (ctypes.c_int * n)(*attention_mask)
        with self._live_lock:
            self._live[ctypes.addressof(ids_arr)] = (ids_arr, mask_arr)
        return TokenizerEncodeResult(
            token_ids=ctypes.cast(ids_arr, ctypes.POINTER(ctypes.c_int)),
            attention_mask=ctypes.cast(mask_arr, ctypes.POINTER(ctypes.c_int)),
            len=n,
        )

    def encode(
        self,
        handle: Any,
        data: Any,
        length: int,
        add_special_token: int,
        out_results: Any,
    ) -> None:
        tokenizer = _state(handle).tokenizer
        text = ctypes.string_at(data, length).decode("utf-8")
        try:
            encoding = tokenizer.encode(text, add_special_tokens=bool(add_special_token))
        except Exception as exc:
            raise TokenizerError(f"Encode failed: {exc}") from exc
        out_results[0] = self._store(encoding.ids, encoding.attention_mask)

    def encode_batch(
        self,
        handle: Any,
        data: Any,
        lengths: Any,
        num_seqs: int,
        add_special_token: int,
        out_results: Any,
    ) -> None:
        tokenizer = _state(handle).tokenizer
        texts = [ctypes.string_at(data[i], lengths[i]).decode("utf-8") for i in range(num_seqs)]
        try:
            encodings = tokenizer.encode_batch(texts, add_special_tokens=bool(add_special_token))
        except Exception as exc:
            raise TokenizerError(f"Batch encode failed: {exc}") from exc
        for i, encoding in enumerate(encodings):
            out_results[i] = self._store(encoding.ids, encoding.attention_mask)

    def free_encode_results(self, results: Any, num_seqs: int) -> None:
        with self._live_lock:
            for i in range(num_seqs):
                address = ctypes.cast(results[i].token_ids, ctypes.c_void_p).value
                if address is None or self._live.pop(address, None) is None:
                    raise StateError(
                        "Encode result released twice or never allocated",
                        details={"slot": i},
                    )

    def decode(self, handle: Any, ids: Any, length: int, skip_special_token: int) -> None:
        state = _state(handle)
        try:
            text = state.tokenizer.decode(
                list(ids[:length]), skip_special_tokens=bool(skip_special_token)
            )
        except Exception as exc:
            raise TokenizerError(f"Decode failed: {exc}") from exc
        data = text.encode("utf-8")
        state.decode_buf = ctypes.create_string_buffer(data, len(data))
        state.decode_len = len(data)

    def get_decode_str(self, handle: Any) -> tuple[int, int]:
        state = _state(handle)
        return (ctypes.addressof(state.decode_buf), state.decode_len)

    def get_vocab_size(self, handle: Any) -> int:
        return _state(handle).tokenizer.get_vocab_size(with_added_tokens=True)

    def id_to_token(self, handle: Any, token_id: int) -> tuple[int, int]:
        state = _state(handle)
        token = state.tokenizer.id_to_token(token_id) or ""
        data = token.encode("utf-8")
        state.token_buf = ctypes.create_string_buffer(data, len(data))
        state.token_len = len(data)
        return (ctypes.addressof(state.token_buf), state.token_len)

    def token_to_id(self, handle: Any, token: Any, length: int) -> int:
        tokenizer = _state(handle).tokenizer
        token_id = tokenizer.token_to_id(ctypes.string_at(token, length).decode("utf-8"))
        return NOT_FOUND if token_id is None else token_id

    def free(self, handle: Any) -> None:
        state = _state(handle)
        state.tokenizer = None
        logger.debug("Tokenizer handle destroyed", extra={"engine": self.name})
