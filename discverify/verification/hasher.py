import hashlib
import zlib
from concurrent.futures import Executor
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple

from discverify.common.models import Hashes

ALGORITHMS = ("crc32", "md5", "sha1")


def should_compute_crc32_by_default() -> bool:
    # zlib's crc32 is table/SIMD accelerated everywhere
    return True


def should_compute_md5_by_default() -> bool:
    # No hardware acceleration for MD5; only worth it when asked for
    return False


def should_compute_sha1_by_default() -> bool:
    return True


def calculate_hashes(
    file_path: Path,
    algorithms: Tuple[str, ...] = ALGORITHMS,
    block_size: int = 65536,
    progress_cb: Optional[Callable[[float], None]] = None,
) -> Dict[str, str]:
    """
    Calculate hashes for any file in one pass.
    Supported algorithms: 'crc32', 'md5', 'sha1'.
    Returns a dictionary with algorithm names as keys and hex strings as values.
    Raises OSError when the file cannot be read.
    """
    hash_objs = _init_hash_objects(algorithms)

    total_size = file_path.stat().st_size
    processed = 0

    with open(file_path, "rb") as f:
        while True:
            chunk = f.read(block_size)
            if not chunk:
                break
            _update_hashes(hash_objs, chunk)

            if progress_cb and total_size > 0:
                processed += len(chunk)
                progress_cb(processed / total_size)

    return {alg: digest.hex() for alg, digest in _finalize_digests(hash_objs).items()}


def _init_hash_objects(algorithms: Tuple[str, ...]) -> Dict:
    objs = {}
    for alg in algorithms:
        if alg == "crc32":
            objs["crc32"] = 0
        elif alg == "md5":
            objs["md5"] = hashlib.md5()
        elif alg == "sha1":
            objs["sha1"] = hashlib.sha1()
        else:
            raise ValueError(f"Unsupported hash algorithm: {alg}")
    return objs


def _update_one(objs: Dict, alg: str, chunk: bytes) -> None:
    if alg == "crc32":
        objs["crc32"] = zlib.crc32(chunk, objs["crc32"])
    else:
        objs[alg].update(chunk)


def _update_hashes(objs: Dict, chunk: bytes):
    for alg in objs:
        _update_one(objs, alg, chunk)


def _finalize_digests(objs: Dict) -> Dict[str, bytes]:
    res = {}
    for alg, obj in objs.items():
        if alg == "crc32":
            res["crc32"] = (obj & 0xFFFFFFFF).to_bytes(4, "big")
        else:
            res[alg] = obj.digest()
    return res


class HashSet:
    """Incremental CRC32/MD5/SHA-1 over one byte stream.

    Every enabled algorithm sees every byte exactly once and in order, so the
    result does not depend on how the stream was chunked. Disabled algorithms
    allocate nothing.
    """

    def __init__(self, crc32: bool = True, md5: bool = False, sha1: bool = True):
        selected = tuple(
            alg for alg, on in (("crc32", crc32), ("md5", md5), ("sha1", sha1)) if on
        )
        self._objs = _init_hash_objects(selected)
        self._finalized = False

    @property
    def algorithms(self) -> Tuple[str, ...]:
        return tuple(self._objs)

    @property
    def finalized(self) -> bool:
        return self._finalized

    def update(self, chunk: bytes, executor: Optional[Executor] = None) -> None:
        """Feed the next chunk. With an executor the algorithms run side by side."""
        if self._finalized:
            raise RuntimeError("HashSet already finalized")
        if not chunk or not self._objs:
            return
        if executor is None or len(self._objs) == 1:
            _update_hashes(self._objs, chunk)
            return
        # Each algorithm owns its own state, so they can be updated concurrently
        futures = [executor.submit(_update_one, self._objs, alg, chunk) for alg in self._objs]
        for future in futures:
            future.result()

    def disable(self) -> None:
        """Stop hashing; the stream is no longer complete so no digest is valid."""
        self._objs = {}

    def finalize(self) -> Hashes:
        if self._finalized:
            raise RuntimeError("HashSet already finalized")
        self._finalized = True
        digests = _finalize_digests(self._objs)
        self._objs = {}
        return Hashes(
            crc32=digests.get("crc32"),
            md5=digests.get("md5"),
            sha1=digests.get("sha1"),
        )
