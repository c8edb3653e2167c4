from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Callable

from discverify import config

# read(offset, size) -> bytes; may return fewer bytes near the end of the image
ReadFn = Callable[[int, int], bytes]


@dataclass(slots=True)
class WiiPartition:
    group: int
    index: int
    offset: int
    type: int

    @property
    def name(self) -> str:
        known = config.PARTITION_TYPE_NAMES.get(self.type)
        if known:
            return known
        # Channel-type partitions carry a four character title id instead
        raw = struct.pack(">I", self.type)
        if all(0x20 <= b < 0x7F for b in raw):
            return raw.decode("ascii")
        return f"{self.group}:{self.index}"


@dataclass(slots=True)
class PartitionHeader:
    ticket_signature_type: int
    tmd_size: int
    tmd_offset: int
    cert_chain_size: int
    cert_chain_offset: int
    h3_offset: int
    data_offset: int
    data_size: int


def parse_partition_table(read: ReadFn) -> list[WiiPartition]:
    """
    Read the four partition groups at 0x40000.
    Raises ValueError when the table is cut off or obviously garbage.
    """
    groups_raw = read(config.WII_PARTITION_TABLE_OFFSET, config.WII_PARTITION_GROUPS * 8)
    if len(groups_raw) < config.WII_PARTITION_GROUPS * 8:
        raise ValueError("partition table is beyond the end of the image")

    partitions: list[WiiPartition] = []
    for group in range(config.WII_PARTITION_GROUPS):
        count, table_offset = struct.unpack_from(">II", groups_raw, group * 8)
        if count == 0:
            continue
        if count > config.WII_MAX_PARTITIONS_PER_GROUP:
            raise ValueError(f"partition group {group} claims {count} partitions")

        table_raw = read(table_offset << 2, count * 8)
        if len(table_raw) < count * 8:
            raise ValueError(f"partition group {group} table is beyond the end of the image")

        for index in range(count):
            offset, ptype = struct.unpack_from(">II", table_raw, index * 8)
            partitions.append(
                WiiPartition(group=group, index=index, offset=offset << 2, type=ptype)
            )
    return partitions


def parse_partition_header(raw: bytes) -> PartitionHeader:
    if len(raw) < config.WII_PARTITION_HEADER_SIZE:
        raise ValueError("partition header is truncated")
    sig_type = struct.unpack_from(">I", raw, 0)[0]
    (tmd_size, tmd_offset, cert_size, cert_offset,
     h3_offset, data_offset, data_size) = struct.unpack_from(">7I", raw, 0x2A4)
    return PartitionHeader(
        ticket_signature_type=sig_type,
        tmd_size=tmd_size,
        tmd_offset=tmd_offset << 2,
        cert_chain_size=cert_size,
        cert_chain_offset=cert_offset << 2,
        h3_offset=h3_offset << 2,
        data_offset=data_offset << 2,
        data_size=data_size << 2,
    )
