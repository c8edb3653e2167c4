"""Plain GameCube/Wii disc images as a byte source for the verifier."""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import BinaryIO, Optional

from discverify import config
from discverify.common.exceptions import VolumeOpenError
from discverify.common.models import DiscIdentity
from discverify.gamecube.metadata import DiscHeader, parse_disc_header
from discverify.wii.metadata import WiiPartition, parse_partition_table

logger = logging.getLogger(__name__)


class DiscVolume:
    """Ordered, chunked read access to one disc image.

    Reads are serialized with a lock so a background reader and the caller
    can share the handle.
    """

    def __init__(self, path: Path, handle: BinaryIO, header: DiscHeader, size: int):
        self.path = path
        self.header = header
        self.size = size
        self._handle: Optional[BinaryIO] = handle
        self._lock = threading.Lock()

    @property
    def platform(self) -> str:
        return self.header.platform or "unknown"

    @property
    def is_wii(self) -> bool:
        return self.header.platform == "wii"

    @property
    def identity(self) -> DiscIdentity:
        return DiscIdentity(
            game_id=self.header.game_id,
            platform=self.platform,
            disc_number=self.header.disc_number,
            revision=self.header.revision,
            size=self.size,
        )

    @property
    def closed(self) -> bool:
        return self._handle is None

    def read(self, offset: int, size: int) -> bytes:
        """Read up to `size` bytes at `offset`. Short only at end of file."""
        with self._lock:
            if self._handle is None:
                raise ValueError("read from a closed volume")
            if offset >= self.size or size <= 0:
                return b""
            self._handle.seek(offset)
            return self._handle.read(size)

    def partitions(self) -> list[WiiPartition]:
        """Wii partition table. Raises ValueError when it cannot be decoded."""
        if not self.is_wii:
            return []
        return parse_partition_table(self.read)

    def close(self) -> None:
        with self._lock:
            if self._handle is not None:
                self._handle.close()
                self._handle = None

    def __enter__(self) -> "DiscVolume":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def open_volume(path: Path | str) -> DiscVolume:
    """
    Open a plain (uncompressed) GameCube or Wii image.
    Raises VolumeOpenError when the file cannot be treated as a disc at all.
    """
    path = Path(path)
    if not path.is_file():
        raise VolumeOpenError(str(path), "file not found")

    try:
        handle = open(path, "rb")
    except OSError as e:
        raise VolumeOpenError(str(path), e.strerror or str(e)) from e

    try:
        size = os.fstat(handle.fileno()).st_size
        raw = handle.read(config.DISC_HEADER_SIZE)
    except OSError as e:
        handle.close()
        raise VolumeOpenError(str(path), e.strerror or str(e)) from e

    for magic, container in config.CONTAINER_MAGICS.items():
        if raw.startswith(magic):
            handle.close()
            raise VolumeOpenError(
                str(path), f"{container} images must be converted to ISO before verifying"
            )

    try:
        header = parse_disc_header(raw)
    except ValueError as e:
        handle.close()
        raise VolumeOpenError(str(path), str(e)) from e

    if header.platform is None:
        handle.close()
        raise VolumeOpenError(str(path), "not a GameCube or Wii disc image")

    logger.debug(
        "Opened %s: %s %s rev %d (%d bytes)",
        path.name, header.platform, header.game_id, header.revision, size,
    )
    return DiscVolume(path, handle, header, size)
