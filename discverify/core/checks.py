"""Structure checks - one-time header/partition validation plus per-chunk region checks."""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from typing import Optional

from discverify import config
from discverify.common.models import Severity
from discverify.verification.problems import ProblemCollector
from discverify.volume import DiscVolume
from discverify.wii.metadata import parse_partition_header

logger = logging.getLogger(__name__)

DOL_HEADER_SIZE = 0x100
FST_ENTRY_SIZE = 12
# FSTs of real discs stay well below this; anything larger is garbage
FST_SIZE_LIMIT = 0x1000000


@dataclass(slots=True)
class Region:
    """A byte range that must not be blank, checked as the scan passes over it."""
    name: str
    offset: int
    size: int
    severity: Severity
    has_data: bool = False
    done: bool = False

    @property
    def end(self) -> int:
        return self.offset + self.size


class RegionTracker:
    def __init__(self, regions: list[Region]):
        self.regions = [r for r in regions if r.size > 0]

    def observe(self, offset: int, chunk: bytes, problems: ProblemCollector) -> None:
        chunk_end = offset + len(chunk)
        for region in self.regions:
            if region.done or region.end <= offset or region.offset >= chunk_end:
                continue
            if not region.has_data:
                start = max(region.offset, offset) - offset
                stop = min(region.end, chunk_end) - offset
                if chunk[start:stop].strip(b"\x00"):
                    region.has_data = True
            if chunk_end >= region.end:
                region.done = True
                if not region.has_data:
                    problems.add(region.severity, f"The {region.name} contains no data.")


class BaseStructureChecker:
    """Checks that need only the header and partition table, run once at start."""

    def check(self, volume: DiscVolume, problems: ProblemCollector) -> list[Region]:
        self._check_common(volume, problems)
        return []

    def _check_common(self, volume: DiscVolume, problems: ProblemCollector) -> None:
        header = volume.header

        if volume.size % config.CLUSTER_SIZE != 0:
            problems.add(
                Severity.LOW,
                f"The size of the disc image ({volume.size} bytes) is not a "
                f"multiple of 0x{config.CLUSTER_SIZE:X} bytes.",
            )

        standard = config.STANDARD_DISC_SIZES.get(volume.platform)
        if standard and volume.size > standard:
            problems.add(
                Severity.LOW,
                f"The disc image is larger than a standard {volume.platform} disc "
                f"({volume.size} > {standard} bytes).",
            )

        if not header.game_id.isascii() or not header.game_id.isalnum():
            problems.add(Severity.LOW, f"The game ID {header.game_id!r} is unusual.")

        if not header.internal_name:
            problems.add(Severity.LOW, "The internal game name is empty.")


class GameCubeStructureChecker(BaseStructureChecker):

    def check(self, volume: DiscVolume, problems: ProblemCollector) -> list[Region]:
        self._check_common(volume, problems)
        regions: list[Region] = []

        apploader = self._check_apploader(volume, problems)
        if apploader:
            regions.append(apploader)
        dol = self._check_dol(volume, problems)
        if dol:
            regions.append(dol)
        fst = self._check_fst(volume, problems)
        if fst:
            regions.append(fst)
        return regions

    def _check_apploader(self, volume: DiscVolume, problems: ProblemCollector) -> Optional[Region]:
        raw = volume.read(config.APPLOADER_OFFSET, config.APPLOADER_HEADER_SIZE)
        if len(raw) < config.APPLOADER_HEADER_SIZE:
            problems.add(
                Severity.HIGH,
                "The disc image is truncated: the apploader is missing.",
            )
            return None
        body_size, trailer_size = struct.unpack_from(">II", raw, 0x14)
        size = config.APPLOADER_HEADER_SIZE + body_size + trailer_size
        if config.APPLOADER_OFFSET + size > volume.size:
            problems.add(
                Severity.HIGH,
                "The apploader extends beyond the end of the disc image.",
            )
            size = volume.size - config.APPLOADER_OFFSET
        return Region("apploader", config.APPLOADER_OFFSET, size, Severity.HIGH)

    def _check_dol(self, volume: DiscVolume, problems: ProblemCollector) -> Optional[Region]:
        offset = volume.header.dol_offset
        if offset == 0 or offset + DOL_HEADER_SIZE > volume.size:
            problems.add(
                Severity.HIGH,
                "The main executable (DOL) is beyond the end of the disc image.",
            )
            return None

        raw = volume.read(offset, DOL_HEADER_SIZE)
        offsets = struct.unpack_from(">18I", raw, 0x00)
        sizes = struct.unpack_from(">18I", raw, 0x90)
        size = max(
            [DOL_HEADER_SIZE] + [o + s for o, s in zip(offsets, sizes) if s]
        )
        if offset + size > volume.size:
            problems.add(
                Severity.HIGH,
                "The main executable (DOL) extends beyond the end of the disc image.",
            )
            size = volume.size - offset
        return Region("main executable (DOL)", offset, size, Severity.HIGH)

    def _check_fst(self, volume: DiscVolume, problems: ProblemCollector) -> Optional[Region]:
        header = volume.header
        offset, size = header.fst_offset, header.fst_size

        if offset == 0 or size == 0:
            problems.add(Severity.HIGH, "The disc image has no file system table.")
            return None
        if offset + size > volume.size:
            problems.add(
                Severity.HIGH,
                "The file system table extends beyond the end of the disc image.",
            )
            return None
        if size > header.fst_max_size:
            problems.add(
                Severity.MEDIUM,
                "The file system table is larger than its declared maximum size.",
            )
        if size < FST_ENTRY_SIZE or size > FST_SIZE_LIMIT:
            problems.add(Severity.MEDIUM, "The file system table is malformed.")
            return Region("file system table", offset, size, Severity.HIGH)

        raw = volume.read(offset, size)
        if len(raw) < size:
            problems.add(Severity.HIGH, "The file system table could not be read completely.")
            return None
        flags = raw[0]
        entry_count = struct.unpack_from(">I", raw, 8)[0]
        if flags != 1 or entry_count == 0 or entry_count * FST_ENTRY_SIZE > size:
            problems.add(Severity.MEDIUM, "The file system table is malformed.")
            return Region("file system table", offset, size, Severity.HIGH)

        outside = 0
        for index in range(1, entry_count):
            base = index * FST_ENTRY_SIZE
            is_dir = raw[base] != 0
            if is_dir:
                continue
            file_offset, file_size = struct.unpack_from(">II", raw, base + 4)
            if file_offset + file_size > volume.size:
                outside += 1
        if outside:
            problems.add(
                Severity.HIGH,
                f"{outside} file(s) extend beyond the end of the disc image; "
                "the image is truncated.",
            )
        return Region("file system table", offset, size, Severity.HIGH)


class WiiStructureChecker(BaseStructureChecker):

    def check(self, volume: DiscVolume, problems: ProblemCollector) -> list[Region]:
        self._check_common(volume, problems)

        try:
            partitions = volume.partitions()
        except ValueError as e:
            problems.add(Severity.HIGH, f"The partition table could not be read: {e}.")
            return []

        types = {p.type for p in partitions}
        if 0 not in types:
            problems.add(Severity.HIGH, "The game partition is missing.")
        if 1 not in types:
            problems.add(Severity.LOW, "The update partition is missing.")

        regions: list[Region] = []
        for partition in partitions:
            name = partition.name
            if partition.offset % config.CLUSTER_SIZE != 0:
                problems.add(Severity.MEDIUM, f"The {name} partition is not correctly aligned.")

            raw = volume.read(partition.offset, config.WII_PARTITION_HEADER_SIZE)
            try:
                header = parse_partition_header(raw)
            except ValueError:
                problems.add(
                    Severity.HIGH,
                    f"The {name} partition is beyond the end of the disc image.",
                )
                continue

            if header.ticket_signature_type != config.WII_TICKET_SIGNATURE_RSA2048:
                problems.add(
                    Severity.MEDIUM,
                    f"The ticket of the {name} partition has an unknown signature type.",
                )

            regions.append(Region(
                f"header of the {name} partition",
                partition.offset,
                config.WII_PARTITION_HEADER_SIZE,
                Severity.HIGH,
            ))

            if header.data_size == 0:
                problems.add(Severity.MEDIUM, f"The {name} partition contains no data.")
                continue
            data_start = partition.offset + header.data_offset
            data_end = data_start + header.data_size
            if data_end > volume.size:
                problems.add(
                    Severity.HIGH,
                    f"The {name} partition extends beyond the end of the disc image; "
                    "the image is truncated.",
                )
            if data_start < volume.size:
                first_cluster = min(config.CLUSTER_SIZE, volume.size - data_start)
                regions.append(Region(
                    f"first cluster of the {name} partition",
                    data_start,
                    first_cluster,
                    Severity.MEDIUM,
                ))
        return regions


def get_checker_for_platform(platform: str) -> BaseStructureChecker:
    checkers = {
        "gamecube": GameCubeStructureChecker,
        "wii": WiiStructureChecker,
    }
    return checkers.get(platform, BaseStructureChecker)()
