from pathlib import Path
from typing import Optional

SYSTEM_TO_DAT_KEYWORDS = {
    "gamecube": ["Nintendo - GameCube"],
    "wii": ["Nintendo - Wii"],
}


def find_dat_for_system(dats_root: Path, system_name: str) -> Optional[Path]:
    """
    Find the best matching DAT file for a given platform.
    Searches in root and the redump subfolder.
    """
    keywords = SYSTEM_TO_DAT_KEYWORDS.get(system_name.lower())
    if not keywords:
        return None

    search_dirs = [dats_root, dats_root / "redump"]

    candidates = []
    for source_dir in search_dirs:
        if not source_dir.exists():
            continue

        for dat_file in list(source_dir.glob("*.dat")) + list(source_dir.glob("*.xml")):
            name = dat_file.stem
            for kw in keywords:
                if not name.startswith(kw):
                    continue
                # "Nintendo - Wii" is also a prefix of "Nintendo - Wii U"
                rest = name[len(kw):]
                if rest == "" or (rest.startswith(" ") and not rest.startswith(" U")):
                    candidates.append(dat_file)
                    break

    if not candidates:
        return None

    # Sort by name descending (usually puts newer dates first if format is Name
    # (YYYYMMDD))
    candidates.sort(key=lambda p: p.name, reverse=True)
    return candidates[0]
