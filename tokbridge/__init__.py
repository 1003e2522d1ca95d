"""
Tokbridge - A typed boundary around tokenization engines.

Tokbridge turns text into token ids and back through an opaque engine
handle. The engine (the Hugging Face ``tokenizers`` package in-process, or
a shared library exporting the ``tokenizers_*`` C API) owns the vocabulary
and the algorithm; tokbridge owns the boundary: marshaling, buffer
lifetimes, and a uniform API.

Quick Start
-----------

    >>> from tokbridge import Tokenizer
    >>>
    >>> with Tokenizer.from_json(open("tokenizer.json").read()) as tok:
    ...     enc = tok.encode("hello world")
    ...     print(enc.ids, enc.attention_mask)
    ...     print(tok.decode(enc.ids))

Batches are encoded in one engine call:

    >>> encodings = tok.encode_batch(["hello", "world"])
    >>> [e.ids for e in encodings]
    [(1,), (2,)]

Unknown tokens are not errors:

    >>> tok.token_to_id("missing")
    -1


Engines
-------

- ``"huggingface"`` (default) - ``tokenizers.Tokenizer`` in-process
- ``"native"`` - shared library found via ``TOKBRIDGE_LIBRARY``

Select with ``Tokenizer.from_json(blob, engine="native")`` or the
``TOKBRIDGE_ENGINE`` environment variable.


Thread Safety
-------------

Every Tokenizer serializes the calls on its handle with its own lock, so
one instance can be shared between threads. For throughput, use one
Tokenizer per thread.
"""

from tokbridge._logging import setup_logging as setup_logging
from tokbridge._version import __version__ as __version__

# Engines
from tokbridge.engine import HuggingFaceEngine, NativeEngine, TokenizerEngine, get_engine

# Exceptions (all via tokbridge.exceptions)
from tokbridge.exceptions import (
    EngineError as EngineError,
)
from tokbridge.exceptions import (
    StateError as StateError,
)
from tokbridge.exceptions import (
    TokbridgeError,
)
from tokbridge.exceptions import (
    TokenizerError as TokenizerError,
)
from tokbridge.exceptions import (
    ValidationError as ValidationError,
)

# Tokenizer
from tokbridge.tokenizer import AddedToken, Encoding, Tokenizer

# =============================================================================
# Public API - Mapped 1:1 to Documentation
# =============================================================================
#
# Guidelines for maintainers:
#   - Only add symbols that deserve top-level documentation
#   - Use comments to group related exports into sections
#   - Other symbols remain importable via submodules
#     (e.g., from tokbridge.engine.protocol import TokenizerEncodeResult)
#
__all__ = [
    # Tokenizer
    "Tokenizer",
    "Encoding",
    "AddedToken",
    # Engines
    "TokenizerEngine",
    "HuggingFaceEngine",
    "NativeEngine",
    "get_engine",
    # Logging
    "setup_logging",
    # Exceptions
    "TokbridgeError",
]
