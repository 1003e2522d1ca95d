"""
Owned result types returned by Tokenizer.

Nothing here points into engine memory: every value is copied out of the
engine's buffers before the buffers are released.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass


@dataclass(frozen=True)
class Encoding:
    """
    Token ids and attention mask for one encoded text.

    ``ids`` and ``attention_mask`` always have the same length. Mask entries
    are 1 for real tokens and 0 for padding.

    Example:
        >>> enc = tokenizer.encode("hello world")
        >>> enc.ids
        (1, 2)
        >>> enc.attention_mask
        (1, 1)
    """

    ids: tuple[int, ...]
    attention_mask: tuple[int, ...]

    def __len__(self) -> int:
        return len(self.ids)

    def __iter__(self) -> Iterator[int]:
        return iter(self.ids)

    def tolist(self) -> list[int]:
        """Token ids as a list."""
        return list(self.ids)


@dataclass(frozen=True)
class AddedToken:
    """A vocabulary entry added outside the base model (e.g., ``[CLS]``)."""

    content: str
    id: int
