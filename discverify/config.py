"""Configuration and constants for the discverify package."""
from __future__ import annotations

from typing import Dict

# Default user settings file and cache location
SETTINGS_DEFAULT = "discverify.json"
CACHE_DIR_DEFAULT = "~/.cache/discverify"

# Bytes handed to the hashers by a single process() call
CHUNK_SIZE_DEFAULT = 0x200000

# Wii discs are laid out in 32 KiB clusters; good dumps are always a
# multiple of this size, GameCube included.
CLUSTER_SIZE = 0x8000

# Disc header
DISC_HEADER_SIZE = 0x440
GAMECUBE_MAGIC_OFFSET = 0x1C
GAMECUBE_MAGIC = 0xC2339F3D
WII_MAGIC_OFFSET = 0x18
WII_MAGIC = 0x5D1C9EA3
INTERNAL_NAME_OFFSET = 0x20
INTERNAL_NAME_SIZE = 0x3E0
DOL_OFFSET_FIELD = 0x420
FST_OFFSET_FIELD = 0x424
FST_SIZE_FIELD = 0x428
FST_MAX_SIZE_FIELD = 0x42C
APPLOADER_OFFSET = 0x2440
APPLOADER_HEADER_SIZE = 0x20

# Wii partition table
WII_PARTITION_TABLE_OFFSET = 0x40000
WII_PARTITION_GROUPS = 4
WII_MAX_PARTITIONS_PER_GROUP = 8
WII_PARTITION_HEADER_SIZE = 0x2C0
WII_TICKET_SIGNATURE_RSA2048 = 0x00010001

PARTITION_TYPE_NAMES: Dict[int, str] = {
    0: "game",
    1: "update",
    2: "channel",
}

# Largest standard disc sizes (dual layer for Wii)
STANDARD_DISC_SIZES: Dict[str, int] = {
    "gamecube": 1_459_978_240,
    "wii": 8_511_160_320,
}

# Compressed/wrapped containers that must be converted back to a plain image
# before they can be verified.
CONTAINER_MAGICS: Dict[bytes, str] = {
    b"RVZ\x01": "RVZ",
    b"WIA\x01": "WIA",
    b"\x01\xC0\x0B\xB1": "GCZ",
    b"WBFS": "WBFS",
    b"CISO": "CISO",
    b"TGC\x00": "TGC",
}

# Reference database (redump.org datfiles)
REDUMP_BASE_URL = "http://redump.org/datfile"
REDUMP_SYSTEMS: Dict[str, str] = {
    "gamecube": "gc",
    "wii": "wii",
}
REQUEST_TIMEOUT_DEFAULT = 30
