"""
Engine handle protocol.

The flat call surface every tokenization engine exposes. It mirrors the
``tokenizers_c.h`` C ABI: data crosses the boundary only as ``ctypes``
buffers with explicit lengths, results are written into caller-provided
``TokenizerEncodeResult`` slots, and borrowed strings come back as
``(address, length)`` pairs.

Buffer ownership
----------------

* ``encode`` / ``encode_batch`` allocate the id and mask buffers behind each
  result slot. The engine owns them until ``free_encode_results`` is called,
  exactly once per produced batch (``num_seqs=1`` for a single encode).
* ``get_decode_str`` and ``id_to_token`` return views on handle-internal
  buffers. A view is valid only until the next call on the same handle and
  must be copied out immediately.
* ``iterate_added_vocab`` calls ``callback`` synchronously, once per added
  token, and never after it returns.

A handle is not safe for concurrent use: ``decode`` followed by
``get_decode_str`` is a read-modify sequence on handle state. Callers
serialize all calls on one handle (``Tokenizer`` holds a lock per handle).
"""

import ctypes
from typing import Any, Protocol, runtime_checkable

__all__ = [
    "EngineHandle",
    "IterateAddedVocabCallback",
    "NOT_FOUND",
    "TokenizerEncodeResult",
    "TokenizerEngine",
]

# Opaque reference to one loaded tokenizer instance. Native engines hand out
# pointer values, in-process engines hand out Python objects.
EngineHandle = Any

# token_to_id result for tokens absent from the vocabulary
NOT_FOUND = -1


class TokenizerEncodeResult(ctypes.Structure):
    """One encoded sequence as laid out by the engine.

    ``token_ids`` and ``attention_mask`` both point to ``len`` int32 values.
    """

    _fields_ = [
        ("token_ids", ctypes.POINTER(ctypes.c_int)),
        ("attention_mask", ctypes.POINTER(ctypes.c_int)),
        ("len", ctypes.c_size_t),
    ]


# void (*callback)(const char* content, uint32_t id, void* user_data)
IterateAddedVocabCallback = ctypes.CFUNCTYPE(
    None,
    ctypes.c_char_p,  # content
    ctypes.c_uint32,  # id
    ctypes.c_void_p,  # user_data
)


@runtime_checkable
class TokenizerEngine(Protocol):
    """Operations a tokenization engine provides.

    Every operation except ``create`` takes the handle as its first argument.
    """

    name: str

    def create(self, json: bytes) -> EngineHandle:
        """Parse a serialized tokenizer config and return a live handle."""
        ...

    def iterate_added_vocab(
        self, handle: EngineHandle, callback: Any, user_data: Any = None
    ) -> None:
        """Invoke ``callback(content, id, user_data)`` once per added token."""
        ...

    def encode(
        self,
        handle: EngineHandle,
        data: Any,
        length: int,
        add_special_token: int,
        out_results: "ctypes.Array[TokenizerEncodeResult]",
    ) -> None:
        """Encode ``length`` UTF-8 bytes at ``data`` into ``out_results[0]``."""
        ...

    def encode_batch(
        self,
        handle: EngineHandle,
        data: Any,
        lengths: Any,
        num_seqs: int,
        add_special_token: int,
        out_results: "ctypes.Array[TokenizerEncodeResult]",
    ) -> None:
        """Encode ``num_seqs`` texts; slot i of ``out_results`` holds text i."""
        ...

    def free_encode_results(
        self, results: "ctypes.Array[TokenizerEncodeResult]", num_seqs: int
    ) -> None:
        """Release the buffers behind ``num_seqs`` consecutive result slots."""
        ...

    def decode(
        self, handle: EngineHandle, ids: Any, length: int, skip_special_token: int
    ) -> None:
        """Decode ``length`` uint32 ids into the handle's decode buffer."""
        ...

    def get_decode_str(self, handle: EngineHandle) -> tuple[int, int]:
        """Borrowed ``(address, length)`` view of the last decode result."""
        ...

    def get_vocab_size(self, handle: EngineHandle) -> int:
        """Vocabulary size including added tokens."""
        ...

    def id_to_token(self, handle: EngineHandle, token_id: int) -> tuple[int, int]:
        """Borrowed ``(address, length)`` view of the token string for an id."""
        ...

    def token_to_id(self, handle: EngineHandle, token: Any, length: int) -> int:
        """Id of a token string, or ``NOT_FOUND``."""
        ...

    def free(self, handle: EngineHandle) -> None:
        """Destroy the handle and all engine state behind it."""
        ...
