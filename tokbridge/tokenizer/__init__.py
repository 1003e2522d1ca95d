"""
Tokenizer module - Text encoding and decoding.

Provides:
- Tokenizer: Text-to-token encoding and token-to-text decoding
- Encoding: Token ids plus attention mask for one text
- AddedToken: Vocabulary entry added outside the base model
"""

from .encoding import AddedToken, Encoding
from .tokenizer import Tokenizer

# =============================================================================
# Public API - See tokbridge/__init__.py for documentation mapping guidelines
# =============================================================================
__all__ = [
    # Core
    "Tokenizer",
    # Results
    "Encoding",
    "AddedToken",
]
