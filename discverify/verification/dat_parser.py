import re
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from discverify.common.exceptions import DATParseError
from discverify.common.models import DiscIdentity
from discverify.verification.base import ReferenceDatabase, ReferenceEntry

SerialKey = Tuple[str, int]


def parse_serial(serial: str) -> Optional[SerialKey]:
    """
    Turn a redump serial ("DL-DOL-GALE-USA", "RVL-RMCP-EUR", "DL-DOL-GKBE-0-USA"...)
    into (four character game id, disc number).
    """
    serial = serial.strip()
    # Skip the console prefix, normally "DL-DOL-" or "RVL-"
    first_dash = serial.find("-", 3)
    start = 0 if first_dash == -1 else first_dash + 1
    if len(serial) < start + 4:
        return None
    game_id = serial[start:start + 4].upper()

    disc_number = 0
    rest = serial[start + 4:]
    if rest and rest[0] != "-":
        # "GALEA" style: a letter right after the game id
        letter = rest[0].upper()
        if not "A" <= letter <= "Z":
            return None
        disc_number = ord(letter) - ord("A")
    elif len(rest) >= 2 and rest[1].isdigit() and (len(rest) == 2 or rest[2] == "-"):
        # "GKBE-1-USA" style
        disc_number = int(rest[1])
    return game_id, disc_number


class DatDb(ReferenceDatabase):
    """In-memory reference database built from DAT files."""

    def __init__(self):
        self.serial_index: Dict[SerialKey, List[ReferenceEntry]] = {}
        self.entries: List[ReferenceEntry] = []
        self.name: str = ""
        self.version: str = ""

    def add_rom(self, rom: ReferenceEntry):
        self.entries.append(rom)
        if not rom.serial:
            return
        for token in rom.serial.split(","):
            key = parse_serial(token)
            if key is None:
                continue
            bucket = self.serial_index.setdefault(key, [])
            if not any(r is rom for r in bucket):
                bucket.append(rom)

    def lookup(self, identity: DiscIdentity) -> List[ReferenceEntry]:
        key = (identity.short_id.upper(), identity.disc_number)
        return list(self.serial_index.get(key, []))

    def __len__(self) -> int:
        return len(self.entries)


def parse_dat_file(dat_path: Path) -> DatDb:
    try:
        with open(dat_path, "rb") as f:
            head = f.read(512)
    except OSError as e:
        raise DATParseError(str(dat_path), str(e)) from e

    if b"<?xml" in head or b"<datafile" in head:
        return _parse_xml_dat(dat_path)

    return _parse_clrmamepro(dat_path)


def _parse_xml_dat(dat_path: Path) -> DatDb:
    db = DatDb()
    try:
        tree = ET.parse(dat_path)
    except ET.ParseError as e:
        raise DATParseError(str(dat_path), str(e)) from e
    root = tree.getroot()

    header = root.find("header")
    if header is not None:
        db.name = header.findtext("name") or ""
        db.version = header.findtext("version") or ""

    for game in root.findall("game"):
        game_name = game.get("name", "Unknown")
        serial = game.findtext("serial")
        version = game.findtext("version")

        for rom in game.findall("rom"):
            try:
                size = int(rom.get("size", "0"))
            except ValueError:
                size = 0

            db.add_rom(ReferenceEntry(
                game_name=game_name,
                rom_name=rom.get("name", "Unknown"),
                size=size,
                crc=rom.get("crc"),
                md5=rom.get("md5"),
                sha1=rom.get("sha1"),
                dat_name=db.name,
                serial=serial,
                version=version,
            ))

    return db


def _parse_clrmamepro(dat_path: Path) -> DatDb:
    db = DatDb()
    try:
        content = dat_path.read_text(encoding="utf-8", errors="ignore")
    except OSError as e:
        raise DATParseError(str(dat_path), str(e)) from e

    header_match = re.search(r'clrmamepro\s*\((.*?)\)', content, re.DOTALL)
    if header_match:
        header_content = header_match.group(1)
        name_match = re.search(r'name\s+"([^"]+)"', header_content)
        if name_match:
            db.name = name_match.group(1)
        version_match = re.search(r'version\s+"([^"]+)"', header_content)
        if version_match:
            db.version = version_match.group(1)

    for start in _block_starts(content, r'game\s*\('):
        block = _balanced_block(content, start)
        if block is not None:
            _parse_game_block(db, block)

    return db


def _block_starts(content: str, pattern: str) -> Iterable[int]:
    return (m.end() for m in re.finditer(pattern, content))


def _balanced_block(content: str, start: int) -> Optional[str]:
    depth = 1
    end = start
    while depth > 0 and end < len(content):
        if content[end] == '(':
            depth += 1
        elif content[end] == ')':
            depth -= 1
        end += 1
    if depth != 0:
        return None
    return content[start:end - 1]


def _parse_game_block(db: DatDb, block_content: str):
    # Only look at the game's own fields, not the ones nested in rom ( ... )
    outer = re.sub(r'rom\s*\(.*?\)', "", block_content, flags=re.DOTALL)
    name_match = re.search(r'name\s+"([^"]+)"', outer)
    game_name = name_match.group(1) if name_match else "Unknown"
    serial_match = re.search(r'serial\s+"([^"]+)"', outer)
    version_match = re.search(r'version\s+"([^"]+)"', outer)

    for start in _block_starts(block_content, r'rom\s*\('):
        rom_content = _balanced_block(block_content, start)
        if rom_content is None:
            continue
        _parse_rom(
            db,
            game_name,
            rom_content,
            serial_match.group(1) if serial_match else None,
            version_match.group(1) if version_match else None,
        )


def _parse_rom(db: DatDb, game_name: str, rom_content: str,
               serial: Optional[str], version: Optional[str]):
    name_match = re.search(r'name\s+"([^"]+)"', rom_content)
    size_match = re.search(r'size\s+(\d+)', rom_content)
    crc_match = re.search(r'crc\s+([0-9A-Fa-f]+)', rom_content)
    md5_match = re.search(r'md5\s+([0-9A-Fa-f]+)', rom_content)
    sha1_match = re.search(r'sha1\s+([0-9A-Fa-f]+)', rom_content)

    db.add_rom(ReferenceEntry(
        game_name=game_name,
        rom_name=name_match.group(1) if name_match else "Unknown",
        size=int(size_match.group(1)) if size_match else 0,
        crc=crc_match.group(1) if crc_match else None,
        md5=md5_match.group(1) if md5_match else None,
        sha1=sha1_match.group(1) if sha1_match else None,
        dat_name=db.name,
        serial=serial,
        version=version,
    ))


def merge_dbs(target: DatDb, source: DatDb):
    """Merge source DatDb into target DatDb."""
    for rom in source.entries:
        target.add_rom(rom)


def load_dat_files(paths: Iterable[Path]) -> DatDb:
    """Parse several DAT files into one database."""
    master = DatDb()
    names = []
    for path in paths:
        db = parse_dat_file(Path(path))
        merge_dbs(master, db)
        if db.name:
            names.append(db.name)
    master.name = ", ".join(names)
    return master
