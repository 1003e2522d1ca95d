"""
Call wrappers between Python types and the engine protocol.

Justification: Handles the ctypes side of every tokenizer call (char and
uint32 array creation, result slot allocation, copying out of borrowed
views) and pairs every encode with exactly one release of its result
buffers, so no engine-owned memory escapes this module.
"""

import ctypes

from ..engine.protocol import (
    EngineHandle,
    IterateAddedVocabCallback,
    TokenizerEncodeResult,
    TokenizerEngine,
)
from .encoding import AddedToken, Encoding


def _char_array(data: bytes) -> "ctypes.Array[ctypes.c_char]":
    return (ctypes.c_char * len(data)).from_buffer_copy(data)


def _copy_result(result: TokenizerEncodeResult) -> Encoding:
    """Copy one result slot into an owned Encoding."""
    n = result.len
    if n == 0:
        return Encoding((), ())
    return Encoding(tuple(result.token_ids[:n]), tuple(result.attention_mask[:n]))


def call_create(engine: TokenizerEngine, json_bytes: bytes) -> EngineHandle:
    """Create an engine handle from a serialized config."""
    return engine.create(json_bytes)


def call_free(engine: TokenizerEngine, handle: EngineHandle) -> None:
    """Destroy an engine handle."""
    engine.free(handle)


def call_collect_added_tokens(engine: TokenizerEngine, handle: EngineHandle) -> list[AddedToken]:
    """Drain iterate_added_vocab into a list, in engine order."""
    collected: list[AddedToken] = []

    def visit(content: bytes, token_id: int, _user_data: object) -> None:
        collected.append(AddedToken(content.decode("utf-8"), token_id))

    # Keep a reference to the CFUNCTYPE object for the duration of the call
    callback = IterateAddedVocabCallback(visit)
    engine.iterate_added_vocab(handle, callback, None)
    return collected


def call_encode(
    engine: TokenizerEngine, handle: EngineHandle, text_bytes: bytes, add_special_tokens: bool
) -> Encoding:
    """Encode one text and release its result buffer."""
    text_array = _char_array(text_bytes)
    results = (TokenizerEncodeResult * 1)()
    engine.encode(handle, text_array, len(text_bytes), 1 if add_special_tokens else 0, results)
    try:
        return _copy_result(results[0])
    finally:
        engine.free_encode_results(results, 1)


def call_encode_batch(
    engine: TokenizerEngine,
    handle: EngineHandle,
    texts: list[bytes],
    add_special_tokens: bool,
) -> list[Encoding]:
    """Encode texts in one engine call and release all results in one call."""
    num_texts = len(texts)
    c_char_p_array = (ctypes.POINTER(ctypes.c_char) * num_texts)()
    lengths_array = (ctypes.c_size_t * num_texts)()

    # Keep references to prevent GC
    char_arrays = []
    for i, text_bytes in enumerate(texts):
        char_array = _char_array(text_bytes)
        char_arrays.append(char_array)
        c_char_p_array[i] = ctypes.cast(char_array, ctypes.POINTER(ctypes.c_char))
        lengths_array[i] = len(text_bytes)

    results = (TokenizerEncodeResult * num_texts)()
    engine.encode_batch(
        handle,
        c_char_p_array,
        lengths_array,
        num_texts,
        1 if add_special_tokens else 0,
        results,
    )
    try:
        return [_copy_result(results[i]) for i in range(num_texts)]
    finally:
        engine.free_encode_results(results, num_texts)


def call_decode(
    engine: TokenizerEngine, handle: EngineHandle, ids: list[int], skip_special_tokens: bool
) -> str:
    """Decode ids and copy the borrowed result string.

    Token ids cross the boundary as uint32; int32 values are reinterpreted,
    not range-checked, here.
    """
    num_ids = len(ids)
    arr = (ctypes.c_uint32 * num_ids)(*(token_id & 0xFFFFFFFF for token_id in ids))
    engine.decode(handle, arr, num_ids, 1 if skip_special_tokens else 0)
    address, length = engine.get_decode_str(handle)
    if not address or length == 0:
        return ""
    return ctypes.string_at(address, length).decode("utf-8")


def call_get_vocab_size(engine: TokenizerEngine, handle: EngineHandle) -> int:
    """Get vocabulary size."""
    return engine.get_vocab_size(handle)


def call_id_to_token(engine: TokenizerEngine, handle: EngineHandle, token_id: int) -> str:
    """Look up a token string and copy the borrowed view."""
    address, length = engine.id_to_token(handle, token_id & 0xFFFFFFFF)
    if not address or length == 0:
        return ""
    return ctypes.string_at(address, length).decode("utf-8")


def call_token_to_id(engine: TokenizerEngine, handle: EngineHandle, token: bytes) -> int:
    """Look up a token id (-1 if not found)."""
    return engine.token_to_id(handle, _char_array(token), len(token))
