"""
Rootdir pytest configuration for tokbridge.

pytest only honours ``pytest_plugins`` in the rootdir conftest, so the
tokenizer JSON configs, the recording engine and the tokenizer fixtures are
registered here for every test package.
"""

pytest_plugins = ["tests.fixtures.tokenizers"]
