"""
Tokenizer thread safety tests.

A single Tokenizer may be shared between threads: every engine call runs
under the tokenizer's lock, and decode plus the read of the decode buffer
form one critical section, so a thread never sees another thread's text.

All concurrency tests use timeout safeguards to prevent CI hangs from stuck threads.
"""

import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from concurrent.futures import TimeoutError as FuturesTimeoutError

import pytest

from tests.fixtures import WORDLEVEL_TOKENIZER_JSON

# Timeout in seconds for thread joins - prevents CI hangs
THREAD_TIMEOUT = 30


def join_threads_with_timeout(threads: list, timeout: float = THREAD_TIMEOUT) -> list:
    """Join threads with timeout, returning list of threads that didn't complete.

    Args:
        threads: List of threading.Thread objects
        timeout: Per-thread timeout in seconds

    Returns:
        List of threads that failed to join within timeout
    """
    stuck = []
    for t in threads:
        t.join(timeout=timeout)
        if t.is_alive():
            stuck.append(t)
    return stuck


class TestSharedTokenizer:
    """One tokenizer, many threads."""

    @pytest.mark.slow
    def test_concurrent_decode_same_tokenizer(self, tokenizer):
        """Concurrent decodes each read their own result.

        Threads alternate between two id lists whose decoded strings differ,
        so reading another thread's decode buffer would show up as a mismatch.
        """
        errors = []
        num_threads = 8
        iterations_per_thread = 200
        inputs = {0: ([1, 2], "hello world"), 1: ([2, 1, 1], "world hello hello")}

        def decode_loop(thread_id):
            try:
                ids, expected = inputs[thread_id % 2]
                for i in range(iterations_per_thread):
                    text = tokenizer.decode(ids)
                    if text != expected:
                        errors.append(f"Thread {thread_id}@{i}: got {text!r}")
            except Exception as e:
                errors.append(f"Thread {thread_id}: {e}")

        threads = [threading.Thread(target=decode_loop, args=(i,)) for i in range(num_threads)]
        for t in threads:
            t.start()
        stuck = join_threads_with_timeout(threads)

        assert not stuck, f"{len(stuck)} threads did not complete within timeout"
        assert not errors, f"Thread errors: {errors[:5]}"

    @pytest.mark.slow
    def test_concurrent_encode_and_batch(self, tokbridge):
        """Mixed encode/encode_batch from many threads match sequential results."""
        engine = tokbridge.HuggingFaceEngine()
        tok = tokbridge.Tokenizer.from_json(WORDLEVEL_TOKENIZER_JSON, engine=engine)
        batch = ["hello", "world", "hello world", "missing"]
        expected_batch = [tok.encode(t) for t in batch]

        def work(thread_id):
            for _ in range(50):
                if thread_id % 2:
                    assert tok.encode_batch(batch) == expected_batch
                else:
                    assert tok.encode("hello world").ids == (1, 2)
            return thread_id

        try:
            with ThreadPoolExecutor(max_workers=8) as pool:
                futures = [pool.submit(work, i) for i in range(16)]
                try:
                    done = [f.result() for f in as_completed(futures, timeout=THREAD_TIMEOUT)]
                except FuturesTimeoutError:
                    pytest.fail("Workers did not complete within timeout")
            assert sorted(done) == list(range(16))
            assert engine.live_buffers == 0
        finally:
            tok.close()

    @pytest.mark.slow
    def test_close_while_in_use(self, tokbridge):
        """Closing from one thread makes the others fail cleanly with StateError."""
        from tokbridge.exceptions import StateError

        tok = tokbridge.Tokenizer.from_json(WORDLEVEL_TOKENIZER_JSON)
        started = threading.Event()
        errors = []

        def encode_loop():
            started.set()
            try:
                while True:
                    tok.encode("hello world")
            except StateError:
                pass
            except Exception as e:
                errors.append(e)

        thread = threading.Thread(target=encode_loop)
        thread.start()
        started.wait(timeout=THREAD_TIMEOUT)
        tok.close()
        stuck = join_threads_with_timeout([thread])

        assert not stuck, "encode loop did not stop after close()"
        assert not errors, f"Unexpected errors: {errors}"


class TestTokenizerPerThread:
    """One tokenizer per thread over a shared engine."""

    def test_tokenizer_per_thread(self, tokbridge):
        """Independent handles on one engine do not interfere."""
        engine = tokbridge.HuggingFaceEngine()
        results = {}
        errors = []

        def run(thread_id):
            try:
                with tokbridge.Tokenizer.from_json(WORDLEVEL_TOKENIZER_JSON, engine=engine) as tok:
                    results[thread_id] = tok.decode(tok.encode("world hello").ids)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=run, args=(i,)) for i in range(6)]
        for t in threads:
            t.start()
        stuck = join_threads_with_timeout(threads)

        assert not stuck
        assert not errors
        assert results == {i: "world hello" for i in range(6)}
        assert engine.live_buffers == 0
