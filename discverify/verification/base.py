from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from discverify.common.models import DiscIdentity, Hashes

_REVISION_RE = re.compile(r"Rev\s*(\d+)", re.IGNORECASE)


@dataclass
class ReferenceEntry:
    game_name: str
    rom_name: str
    size: int
    crc: Optional[str] = None
    md5: Optional[str] = None
    sha1: Optional[str] = None
    dat_name: Optional[str] = None
    serial: Optional[str] = None
    version: Optional[str] = None

    @property
    def revision(self) -> int:
        if not self.version:
            return 0
        match = _REVISION_RE.search(self.version)
        return int(match.group(1)) if match else 0

    @property
    def hashes(self) -> Hashes:
        def _raw(value: Optional[str]) -> Optional[bytes]:
            if not value:
                return None
            try:
                return bytes.fromhex(value)
            except ValueError:
                return None

        return Hashes(crc32=_raw(self.crc), md5=_raw(self.md5), sha1=_raw(self.sha1))


class ReferenceDatabase(ABC):
    @abstractmethod
    def lookup(self, identity: DiscIdentity) -> list[ReferenceEntry]:
        """
        Return every known entry for the disc identity (all revisions).
        Raises ReferenceLookupError when the backing store cannot be used.
        """
        pass
