from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from typing import Optional

from discverify import config

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DiscHeader:
    """Fields of the 0x440-byte boot.bin header shared by GameCube and Wii discs."""
    game_id: str
    disc_number: int
    revision: int
    internal_name: str
    platform: Optional[str]  # "gamecube" | "wii" | None when no magic matches
    dol_offset: int
    fst_offset: int
    fst_size: int
    fst_max_size: int

    @property
    def maker_code(self) -> str:
        return self.game_id[4:6]


def detect_platform(header: bytes) -> Optional[str]:
    """Return "wii" or "gamecube" from the magic words, None otherwise."""
    if len(header) < config.GAMECUBE_MAGIC_OFFSET + 4:
        return None
    wii_magic = struct.unpack_from(">I", header, config.WII_MAGIC_OFFSET)[0]
    if wii_magic == config.WII_MAGIC:
        return "wii"
    gc_magic = struct.unpack_from(">I", header, config.GAMECUBE_MAGIC_OFFSET)[0]
    if gc_magic == config.GAMECUBE_MAGIC:
        return "gamecube"
    return None


def parse_disc_header(header: bytes) -> DiscHeader:
    """
    Decode a disc header. Raises ValueError when fewer than 0x440 bytes are given.

    On Wii discs the DOL/FST fields live inside the encrypted game partition,
    so the raw values here are only meaningful for GameCube.
    """
    if len(header) < config.DISC_HEADER_SIZE:
        raise ValueError(f"disc header too short ({len(header)} bytes)")

    game_id = header[:6].decode("ascii", errors="replace")

    raw_name = header[config.INTERNAL_NAME_OFFSET:
                      config.INTERNAL_NAME_OFFSET + config.INTERNAL_NAME_SIZE]
    name = raw_name.split(b"\x00")[0].decode("shift_jis", errors="ignore").strip()

    dol_offset, fst_offset, fst_size, fst_max_size = struct.unpack_from(
        ">4I", header, config.DOL_OFFSET_FIELD
    )

    return DiscHeader(
        game_id=game_id,
        disc_number=header[6],
        revision=header[7],
        internal_name=name,
        platform=detect_platform(header),
        dol_offset=dol_offset,
        fst_offset=fst_offset,
        fst_size=fst_size,
        fst_max_size=fst_max_size,
    )
