import io
import logging
import threading
import zipfile
import zlib
from pathlib import Path
from typing import Dict, List, Optional

import requests

from discverify import config
from discverify.common.exceptions import DATParseError, DownloadError, ReferenceLookupError
from discverify.common.models import DiscIdentity
from discverify.verification import dat_parser
from discverify.verification.base import ReferenceDatabase, ReferenceEntry

logger = logging.getLogger(__name__)


class RedumpDatabase(ReferenceDatabase):
    """redump.org datfiles, downloaded on first use and cached on disk.

    When the download fails the cached copy from an earlier run is used;
    without one the lookup fails with DownloadError.
    """

    def __init__(
        self,
        cache_dir: Path,
        base_url: str = config.REDUMP_BASE_URL,
        timeout: float = config.REQUEST_TIMEOUT_DEFAULT,
    ):
        self.cache_dir = Path(cache_dir)
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        # Set up retry strategy
        adapter = requests.adapters.HTTPAdapter(max_retries=3)
        self.session.mount("https://", adapter)
        self.session.mount("http://", adapter)
        self._dbs: Dict[str, dat_parser.DatDb] = {}
        self._lock = threading.Lock()

    def datfile_url(self, system: str) -> str:
        return f"{self.base_url}/{system}/serial,version"

    def cache_path(self, system: str) -> Path:
        return self.cache_dir / "redump" / f"{system}.dat"

    def lookup(self, identity: DiscIdentity) -> List[ReferenceEntry]:
        system = config.REDUMP_SYSTEMS.get(identity.platform)
        if system is None:
            return []
        return self._database(system).lookup(identity)

    def _database(self, system: str) -> dat_parser.DatDb:
        with self._lock:
            db = self._dbs.get(system)
            if db is None:
                path = self.download_datfile(system)
                db = dat_parser.parse_dat_file(path)
                if len(db) == 0:
                    raise DATParseError(str(path), "no games found in redump.org data")
                logger.info(f"Redump datfile loaded: {db.name or system} ({len(db)} entries)")
                self._dbs[system] = db
            return db

    def download_datfile(self, system: str) -> Path:
        """
        Download the datfile for a system into the cache.
        Falls back to the cached copy when the server can't be reached.
        """
        url = self.datfile_url(system)
        dest = self.cache_path(system)

        try:
            logger.debug(f"Downloading {url}...")
            resp = self.session.get(url, timeout=self.timeout)
            resp.raise_for_status()
            content = resp.content
        except requests.RequestException as e:
            if dest.exists():
                logger.warning(f"Could not reach redump.org ({e}); using cached {dest.name}")
                return dest
            raise DownloadError(url, str(e)) from e

        data = _extract_datfile(content, url)
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            dest.write_bytes(data)
        except OSError as e:
            raise ReferenceLookupError(
                f"Cannot write redump.org cache {dest}", {"reason": str(e)}
            ) from e
        logger.debug(f"Saved to {dest}")
        return dest


def _extract_datfile(content: bytes, source: str) -> bytes:
    """redump.org serves a zip holding a single .dat; plain XML is accepted too."""
    if not content.startswith(b"PK"):
        if b"<datafile" in content[:1024]:
            return content
        raise DATParseError(source, "response is neither a zip archive nor a DAT file")

    try:
        with zipfile.ZipFile(io.BytesIO(content)) as archive:
            name: Optional[str] = next(
                (n for n in archive.namelist() if n.lower().endswith((".dat", ".xml"))),
                None,
            )
            if name is None:
                raise DATParseError(source, "zip archive holds no DAT file")
            return archive.read(name)
    except (zipfile.BadZipFile, zlib.error, NotImplementedError, EOFError) as e:
        raise DATParseError(source, str(e)) from e
