"""Chunked scan loop with background read-ahead.

The next chunk is always being read by a worker thread while the caller's
`process()` hashes the current one. Progress counters are guarded by a lock
so they can be polled from any thread.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional

from discverify.common.models import ScanState, Severity
from discverify.core.checks import RegionTracker
from discverify.verification.hasher import HashSet
from discverify.verification.problems import ProblemCollector
from discverify.volume import DiscVolume

logger = logging.getLogger(__name__)


class ScanEngine:
    def __init__(
        self,
        volume: DiscVolume,
        hashes: HashSet,
        problems: ProblemCollector,
        regions: Optional[RegionTracker] = None,
        chunk_size: int = 0x200000,
    ):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.volume = volume
        self.hashes = hashes
        self.problems = problems
        self.regions = regions or RegionTracker([])
        self.chunk_size = chunk_size

        self._lock = threading.Lock()
        self._bytes_processed = 0
        self._total_bytes = volume.size

        self._reader: Optional[ThreadPoolExecutor] = None
        self._hash_pool: Optional[ThreadPoolExecutor] = None
        self._pending: Optional[Future] = None
        self._pending_offset = 0
        self._closed = False

    # -- progress -------------------------------------------------------------

    @property
    def bytes_processed(self) -> int:
        with self._lock:
            return self._bytes_processed

    @property
    def total_bytes(self) -> int:
        return self._total_bytes

    @property
    def done(self) -> bool:
        with self._lock:
            return self._bytes_processed >= self._total_bytes

    def snapshot(self, finished: bool = False) -> ScanState:
        with self._lock:
            return ScanState(self._bytes_processed, self._total_bytes, finished)

    def _advance(self, count: int) -> None:
        with self._lock:
            self._bytes_processed = min(self._bytes_processed + count, self._total_bytes)

    # -- lifecycle ------------------------------------------------------------

    def start(self) -> None:
        if self._reader is not None or self._closed:
            return
        self._reader = ThreadPoolExecutor(max_workers=1, thread_name_prefix="scan-reader")
        if len(self.hashes.algorithms) > 1:
            self._hash_pool = ThreadPoolExecutor(
                max_workers=len(self.hashes.algorithms), thread_name_prefix="scan-hash"
            )
        self._schedule(0)

    def _schedule(self, offset: int) -> None:
        if offset >= self._total_bytes:
            self._pending = None
            return
        size = min(self.chunk_size, self._total_bytes - offset)
        self._pending_offset = offset
        self._pending = self._reader.submit(self.volume.read, offset, size)

    def process(self) -> None:
        """Consume one chunk. No-op once every byte has been processed."""
        if self._closed:
            raise RuntimeError("process() on a closed scan engine")
        if self._reader is None:
            raise RuntimeError("process() before start()")
        if self.done or self._pending is None:
            return

        offset = self._pending_offset
        expected = min(self.chunk_size, self._total_bytes - offset)
        try:
            chunk = self._pending.result()
        except OSError as e:
            self._on_read_error(offset, expected, e)
            self._schedule(offset + expected)
            self._advance(expected)
            return

        if len(chunk) < expected:
            # Keep the stream complete up to where the data stops
            self._consume(offset, chunk)
            self.problems.add(
                Severity.HIGH,
                f"The disc image ended unexpectedly at offset 0x{offset + len(chunk):X} "
                f"({self._total_bytes - offset - len(chunk)} bytes missing).",
            )
            self.hashes.disable()
            self._pending = None
            self._advance(self._total_bytes)
            return

        # Start reading the next chunk before hashing this one
        self._schedule(offset + expected)
        self._consume(offset, chunk)
        self._advance(expected)

    def _consume(self, offset: int, chunk: bytes) -> None:
        self.hashes.update(chunk, self._hash_pool)
        self.regions.observe(offset, chunk, self.problems)

    def _on_read_error(self, offset: int, size: int, error: OSError) -> None:
        self.problems.add(
            Severity.MEDIUM,
            f"Failed to read {size} bytes at offset 0x{offset:X}: {error.strerror or error}.",
        )
        if self.hashes.algorithms:
            logger.warning("Read error at 0x%X; checksums will not be calculated", offset)
        self.hashes.disable()

    def close(self) -> None:
        """Stop the background workers and wait for them. Idempotent."""
        self._closed = True
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        for pool in (self._reader, self._hash_pool):
            if pool is not None:
                pool.shutdown(wait=True, cancel_futures=True)
        self._reader = None
        self._hash_pool = None
