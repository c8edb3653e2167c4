from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Optional


class Severity(IntEnum):
    """Impact of a problem; higher values are worse."""
    LOW = 1
    MEDIUM = 2
    HIGH = 3

    @property
    def label(self) -> str:
        return self.name.capitalize()


class ReferenceStatus(IntEnum):
    UNKNOWN = 0
    GOOD_DUMP = 1
    BAD_DUMP = 2
    LOOKUP_ERROR = 3

    @property
    def label(self) -> str:
        labels = {
            ReferenceStatus.UNKNOWN: "Unknown",
            ReferenceStatus.GOOD_DUMP: "Good dump",
            ReferenceStatus.BAD_DUMP: "Bad dump",
            ReferenceStatus.LOOKUP_ERROR: "Lookup error",
        }
        return labels[self]


@dataclass(frozen=True, slots=True)
class VerificationOptions:
    """Snapshot of what a session should compute. Fixed once the session starts."""
    use_reference_database: bool = False
    compute_crc32: bool = True
    compute_md5: bool = False
    compute_sha1: bool = True

    @classmethod
    def defaults(cls, use_reference_database: bool = False) -> "VerificationOptions":
        from discverify.verification import hasher

        return cls(
            use_reference_database=use_reference_database,
            compute_crc32=hasher.should_compute_crc32_by_default(),
            compute_md5=hasher.should_compute_md5_by_default(),
            compute_sha1=hasher.should_compute_sha1_by_default(),
        )


@dataclass(frozen=True, slots=True)
class ScanState:
    bytes_processed: int
    total_bytes: int
    finished: bool = False


@dataclass(frozen=True, slots=True)
class Problem:
    severity: Severity
    text: str


@dataclass(frozen=True, slots=True)
class Hashes:
    """Raw digests. A field is None when its algorithm was not computed."""
    crc32: Optional[bytes] = None
    md5: Optional[bytes] = None
    sha1: Optional[bytes] = None

    def is_empty(self) -> bool:
        return self.crc32 is None and self.md5 is None and self.sha1 is None

    def items(self) -> list[tuple[str, bytes]]:
        pairs = [("crc32", self.crc32), ("md5", self.md5), ("sha1", self.sha1)]
        return [(name, value) for name, value in pairs if value is not None]


@dataclass(frozen=True, slots=True)
class DiscIdentity:
    """What the reference database is queried with."""
    game_id: str
    platform: str  # "gamecube" | "wii"
    disc_number: int = 0
    revision: int = 0
    size: int = 0

    @property
    def short_id(self) -> str:
        return self.game_id[:4]


@dataclass(frozen=True, slots=True)
class VerificationResult:
    summary_text: str
    reference_status: ReferenceStatus = ReferenceStatus.UNKNOWN
    reference_message: str = ""
    crc32: Optional[bytes] = None
    md5: Optional[bytes] = None
    sha1: Optional[bytes] = None
    problems: tuple[Problem, ...] = field(default_factory=tuple)

    @property
    def hashes(self) -> Hashes:
        return Hashes(crc32=self.crc32, md5=self.md5, sha1=self.sha1)

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary_text,
            "reference_status": self.reference_status.name,
            "reference_message": self.reference_message,
            "crc32": self.crc32.hex() if self.crc32 is not None else None,
            "md5": self.md5.hex() if self.md5 is not None else None,
            "sha1": self.sha1.hex() if self.sha1 is not None else None,
            "problems": [
                {"severity": p.severity.name, "text": p.text} for p in self.problems
            ],
        }
