"""
FFI bindings for a native tokenizer library.

Binds a shared library exporting the ``tokenizers_*`` C API (the C binding
of the Rust ``tokenizers`` crate) and adapts it to the engine protocol.
Every function gets explicit ``argtypes``/``restype`` at load time: missing
argtypes truncate pointer arguments to 32 bits on 64-bit systems.

Library resolution order: explicit path, ``TOKBRIDGE_LIBRARY``, then
``ctypes.util.find_library("tokenizers_c")``.
"""

import ctypes
import ctypes.util
import os
import platform
import threading
from typing import Any

from .._logging import scoped_logger
from ..exceptions import EngineError, TokenizerError
from .protocol import EngineHandle, IterateAddedVocabCallback, TokenizerEncodeResult

logger = scoped_logger("native")

_LIB_BASENAME = "tokenizers_c"

_libs: dict[str, ctypes.CDLL] = {}
_libs_lock = threading.Lock()

_size_p = ctypes.POINTER(ctypes.c_size_t)
_char_p = ctypes.POINTER(ctypes.c_char)
_result_p = ctypes.POINTER(TokenizerEncodeResult)

# name -> (argtypes, restype), matching tokenizers_c.h
_SIGNATURES: dict[str, tuple[list[Any], Any]] = {
    "tokenizers_new_from_str": ([_char_p, ctypes.c_size_t], ctypes.c_void_p),
    # Declared as returning int; nothing meaningful is returned
    "tokenizers_iterate_added_vocab": (
        [ctypes.c_void_p, IterateAddedVocabCallback, ctypes.c_void_p],
        None,
    ),
    "tokenizers_encode": (
        [ctypes.c_void_p, _char_p, ctypes.c_size_t, ctypes.c_int, _result_p],
        None,
    ),
    "tokenizers_encode_batch": (
        [
            ctypes.c_void_p,
            ctypes.POINTER(_char_p),
            _size_p,
            ctypes.c_size_t,
            ctypes.c_int,
            _result_p,
        ],
        None,
    ),
    "tokenizers_free_encode_results": ([_result_p, ctypes.c_size_t], None),
    "tokenizers_decode": (
        [ctypes.c_void_p, ctypes.POINTER(ctypes.c_uint32), ctypes.c_size_t, ctypes.c_int],
        None,
    ),
    "tokenizers_get_decode_str": (
        [ctypes.c_void_p, ctypes.POINTER(ctypes.c_void_p), _size_p],
        None,
    ),
    "tokenizers_get_vocab_size": ([ctypes.c_void_p, _size_p], None),
    "tokenizers_id_to_token": (
        [ctypes.c_void_p, ctypes.c_uint32, ctypes.POINTER(ctypes.c_void_p), _size_p],
        None,
    ),
    "tokenizers_token_to_id": (
        [ctypes.c_void_p, _char_p, ctypes.c_size_t, ctypes.POINTER(ctypes.c_int32)],
        None,
    ),
    "tokenizers_free": ([ctypes.c_void_p], None),
}


def _get_lib_name() -> str:
    """Get platform-specific library file name."""
    system = platform.system()
    if system == "Darwin":
        return f"lib{_LIB_BASENAME}.dylib"
    elif system == "Windows":
        return f"{_LIB_BASENAME}.dll"
    else:
        return f"lib{_LIB_BASENAME}.so"


def resolve_library_path(path: str | os.PathLike[str] | None = None) -> str:
    """Locate the native tokenizer library.

    Raises
    ------
        EngineError: If no library can be found.
    """
    if path is not None:
        return os.fspath(path)
    env_path = os.environ.get("TOKBRIDGE_LIBRARY")
    if env_path:
        return env_path
    found = ctypes.util.find_library(_LIB_BASENAME)
    if found:
        return found
    raise EngineError(
        f"Native tokenizer library not found. Set TOKBRIDGE_LIBRARY to the path "
        f"of {_get_lib_name()}.",
        details={"library": _LIB_BASENAME},
    )


def _setup_signatures(lib: ctypes.CDLL, path: str) -> None:
    """Configure argtypes/restype for every C API function."""
    for name, (argtypes, restype) in _SIGNATURES.items():
        try:
            fn = getattr(lib, name)
        except AttributeError as exc:
            raise EngineError(
                f"Native library {path!r} does not export {name}",
                code="ENGINE_SYMBOL_MISSING",
                details={"path": path, "symbol": name},
            ) from exc
        fn.argtypes = argtypes
        fn.restype = restype


def get_lib(path: str | os.PathLike[str] | None = None) -> ctypes.CDLL:
    """Load the native library once per path, with signatures configured."""
    resolved = resolve_library_path(path)
    with _libs_lock:
        lib = _libs.get(resolved)
        if lib is not None:
            return lib
        try:
            lib = ctypes.CDLL(resolved)
        except OSError as exc:
            raise EngineError(
                f"Cannot load native tokenizer library {resolved!r}: {exc}",
                details={"path": resolved},
            ) from exc
        _setup_signatures(lib, resolved)
        _libs[resolved] = lib
    logger.debug("Loaded native tokenizer library", extra={"path": resolved})
    return lib


class NativeEngine:
    """Engine backed by a shared library through ``ctypes``.

    Malformed configuration is fatal inside the library itself (the Rust
    binding aborts the process); a NULL handle is reported as
    ``TokenizerError``.
    """

    name = "native"

    def __init__(self, path: str | os.PathLike[str] | None = None):
        self._lib = get_lib(path)

    def __repr__(self) -> str:
        return f"NativeEngine({self._lib._name!r})"

    def create(self, json: bytes) -> EngineHandle:
        json_array = (ctypes.c_char * len(json)).from_buffer_copy(json)
        handle = self._lib.tokenizers_new_from_str(json_array, len(json))
        if not handle:
            raise TokenizerError("Native engine returned a NULL tokenizer handle")
        return handle

    def iterate_added_vocab(
        self, handle: EngineHandle, callback: Any, user_data: Any = None
    ) -> None:
        self._lib.tokenizers_iterate_added_vocab(handle, callback, user_data)

    def encode(
        self,
        handle: EngineHandle,
        data: Any,
        length: int,
        add_special_token: int,
        out_results: Any,
    ) -> None:
        self._lib.tokenizers_encode(handle, data, length, add_special_token, out_results)

    def encode_batch(
        self,
        handle: EngineHandle,
        data: Any,
        lengths: Any,
        num_seqs: int,
        add_special_token: int,
        out_results: Any,
    ) -> None:
        self._lib.tokenizers_encode_batch(
            handle, data, lengths, num_seqs, add_special_token, out_results
        )

    def free_encode_results(self, results: Any, num_seqs: int) -> None:
        self._lib.tokenizers_free_encode_results(results, num_seqs)

    def decode(
        self, handle: EngineHandle, ids: Any, length: int, skip_special_token: int
    ) -> None:
        self._lib.tokenizers_decode(handle, ids, length, skip_special_token)

    def get_decode_str(self, handle: EngineHandle) -> tuple[int, int]:
        out_ptr = ctypes.c_void_p()
        out_len = ctypes.c_size_t()
        self._lib.tokenizers_get_decode_str(handle, ctypes.byref(out_ptr), ctypes.byref(out_len))
        return (out_ptr.value or 0, out_len.value)

    def get_vocab_size(self, handle: EngineHandle) -> int:
        size = ctypes.c_size_t()
        self._lib.tokenizers_get_vocab_size(handle, ctypes.byref(size))
        return size.value

    def id_to_token(self, handle: EngineHandle, token_id: int) -> tuple[int, int]:
        out_ptr = ctypes.c_void_p()
        out_len = ctypes.c_size_t()
        self._lib.tokenizers_id_to_token(
            handle, token_id, ctypes.byref(out_ptr), ctypes.byref(out_len)
        )
        return (out_ptr.value or 0, out_len.value)

    def token_to_id(self, handle: EngineHandle, token: Any, length: int) -> int:
        out_id = ctypes.c_int32()
        self._lib.tokenizers_token_to_id(handle, token, length, ctypes.byref(out_id))
        return out_id.value

    def free(self, handle: EngineHandle) -> None:
        self._lib.tokenizers_free(handle)
