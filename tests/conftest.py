"""
Global pytest fixtures for tokbridge tests.

This module provides:
- Package import fixture
- Native library discovery (native tests skip without it)
- Environment isolation for TOKBRIDGE_* variables

=============================================================================
Skip Policy
=============================================================================

pytest.skip(): Infrastructure/environmental issues - NOT test failures:
  - Native tokenizers_c library not built or not on TOKBRIDGE_LIBRARY
  These are prerequisites, not tokbridge bugs.
"""

import ctypes.util
import faulthandler
import os

import pytest

# Enable faulthandler to trace native crashes (segfaults)
faulthandler.enable()


@pytest.fixture(scope="session")
def tokbridge():
    """Import and return the tokbridge module."""
    import tokbridge

    return tokbridge


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Keep engine selection deterministic regardless of the caller's shell."""
    monkeypatch.delenv("TOKBRIDGE_ENGINE", raising=False)
    monkeypatch.delenv("TOKBRIDGE_PARALLELISM", raising=False)


def native_library_path() -> str | None:
    """Path of a native tokenizers_c library, or None when unavailable."""
    return os.environ.get("TOKBRIDGE_LIBRARY") or ctypes.util.find_library("tokenizers_c")


@pytest.fixture(scope="session")
def native_library():
    """Native library path; skips the test when none is available."""
    path = native_library_path()
    if not path:
        pytest.skip("Native tokenizers_c library not found. Set TOKBRIDGE_LIBRARY.")
    return path
