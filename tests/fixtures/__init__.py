"""
Shared test fixtures for tokbridge.

Maps to: N/A (shared test fixtures)
"""

from .tokenizers import (
    SPECIAL_TOKENIZER_JSON,
    WORDLEVEL_TOKENIZER_JSON,
    BrokenAddedVocabEngine,
    RecordingEngine,
    ZeroVocabEngine,
)

__all__ = [
    # Tokenizer configs
    "WORDLEVEL_TOKENIZER_JSON",
    "SPECIAL_TOKENIZER_JSON",
    # Engines
    "RecordingEngine",
    "BrokenAddedVocabEngine",
    "ZeroVocabEngine",
]
