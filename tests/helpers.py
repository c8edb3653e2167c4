"""Synthetic GameCube/Wii images for the tests."""

from __future__ import annotations

import io
import struct
import zipfile
from pathlib import Path
from typing import Optional

from discverify import config
from discverify.verification.base import ReferenceEntry
from discverify.verification.dat_parser import DatDb

MiB = 1024 * 1024

APPLOADER_BODY = 0x1000
DOL_OFFSET = 0x10000
DOL_TEXT_SIZE = 0x2000
FST_OFFSET = 0x20000


def _fill(buf: bytearray, offset: int, size: int, seed: int) -> None:
    pattern = bytes((seed + i) % 251 + 1 for i in range(251))
    reps = size // len(pattern) + 1
    buf[offset:offset + size] = (pattern * reps)[:size]


def build_gamecube_image(
    path: Path,
    size: int = 4 * MiB,
    game_id: bytes = b"GTSE01",
    name: bytes = b"Synthetic Test Disc",
    revision: int = 0,
    files: Optional[list[tuple[int, int]]] = None,
    blank_dol: bool = False,
) -> Path:
    """Write a well-formed GameCube image; `files` are (offset, size) pairs."""
    if files is None:
        files = [(0x100000, MiB), (size - 2 * MiB, MiB)]

    buf = bytearray(size)
    _fill(buf, 0x440, size - 0x440, seed=7)

    buf[0:0x440] = bytes(0x440)
    buf[0:6] = game_id
    buf[6] = 0
    buf[7] = revision
    buf[0x20:0x20 + len(name)] = name
    struct.pack_into(">I", buf, config.GAMECUBE_MAGIC_OFFSET, config.GAMECUBE_MAGIC)

    # Apploader: date string, entry point, body size, trailer size
    header = bytearray(0x20)
    header[0:10] = b"2024/01/01"
    struct.pack_into(">III", header, 0x10, 0x81200000, APPLOADER_BODY, 0)
    buf[config.APPLOADER_OFFSET:config.APPLOADER_OFFSET + 0x20] = header

    # DOL with a single text section right after its header
    dol = bytearray(0x100)
    struct.pack_into(">I", dol, 0x00, 0x100)
    struct.pack_into(">I", dol, 0x48, 0x80003100)
    struct.pack_into(">I", dol, 0x90, DOL_TEXT_SIZE)
    struct.pack_into(">I", dol, 0xE0, 0x80003100)
    buf[DOL_OFFSET:DOL_OFFSET + 0x100] = dol
    if blank_dol:
        buf[DOL_OFFSET:DOL_OFFSET + 0x100 + DOL_TEXT_SIZE] = bytes(0x100 + DOL_TEXT_SIZE)

    # FST: root directory + one entry per file, then the string table
    entries = bytearray()
    strings = bytearray()
    entries += struct.pack(">BxxxII", 1, 0, len(files) + 1)
    for i, (offset, fsize) in enumerate(files):
        name_offset = len(strings)
        strings += f"file{i}.bin".encode() + b"\x00"
        entries += bytes([0]) + name_offset.to_bytes(3, "big") + struct.pack(">II", offset, fsize)
    fst = bytes(entries + strings)
    buf[FST_OFFSET:FST_OFFSET + len(fst)] = fst

    struct.pack_into(
        ">4I", buf, config.DOL_OFFSET_FIELD, DOL_OFFSET, FST_OFFSET, len(fst), len(fst)
    )

    path.write_bytes(bytes(buf))
    return path


def build_wii_image(
    path: Path,
    data_size: int = MiB,
    game_id: bytes = b"RTSP01",
    name: bytes = b"Synthetic Wii Disc",
    with_update: bool = True,
    with_game: bool = True,
    truncate_to: Optional[int] = None,
) -> Path:
    update_offset = 0x50000
    game_offset = 0x58000
    data_offset = 0x20000
    size = game_offset + data_offset + data_size

    buf = bytearray(size)
    _fill(buf, 0x440, size - 0x440, seed=3)
    buf[0:0x440] = bytes(0x440)
    buf[0:6] = game_id
    buf[0x20:0x20 + len(name)] = name
    struct.pack_into(">I", buf, config.WII_MAGIC_OFFSET, config.WII_MAGIC)

    # (offset, type, data offset, data size); the update partition fits
    # between the table and the game partition
    partitions = []
    if with_update:
        partitions.append((update_offset, 1, 0x1000, 0x4000))
    if with_game:
        partitions.append((game_offset, 0, data_offset, data_size))

    table_offset = config.WII_PARTITION_TABLE_OFFSET
    buf[table_offset:table_offset + 0x40] = bytes(0x40)
    struct.pack_into(">II", buf, table_offset, len(partitions), (table_offset + 0x20) >> 2)
    for i, (offset, ptype, _, _) in enumerate(partitions):
        struct.pack_into(">II", buf, table_offset + 0x20 + i * 8, offset >> 2, ptype)

    for offset, _, poffset, psize in partitions:
        header = bytearray(config.WII_PARTITION_HEADER_SIZE)
        struct.pack_into(">I", header, 0, config.WII_TICKET_SIGNATURE_RSA2048)
        struct.pack_into(">7I", header, 0x2A4, 0x208, 0x2C0 >> 2, 0xA00, 0x4C8 >> 2,
                         0x8000 >> 2, poffset >> 2, psize >> 2)
        buf[offset:offset + len(header)] = header

    data = bytes(buf)
    if truncate_to is not None:
        data = data[:truncate_to]
    path.write_bytes(data)
    return path


def make_reference_db(
    serial: str = "DL-DOL-GTSE-USA",
    version: Optional[str] = None,
    crc: Optional[str] = None,
    md5: Optional[str] = None,
    sha1: Optional[str] = None,
    game_name: str = "Synthetic Test Disc (USA)",
) -> DatDb:
    db = DatDb()
    db.name = "Nintendo - GameCube"
    db.add_rom(ReferenceEntry(
        game_name=game_name,
        rom_name=f"{game_name}.iso",
        size=0,
        crc=crc,
        md5=md5,
        sha1=sha1,
        dat_name=db.name,
        serial=serial,
        version=version,
    ))
    return db


def corrupt_deflated_zip(payload: bytes, name: str) -> bytes:
    """A zip whose headers are fine but whose deflate stream is garbage."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        archive.writestr(name, payload)
    raw = bytearray(buf.getvalue())
    # Local file header is 30 bytes plus the name; the deflate stream follows
    start = 30 + len(name.encode())
    for i in range(start, start + 8):
        raw[i] ^= 0xFF
    return bytes(raw)
