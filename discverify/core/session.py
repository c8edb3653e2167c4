from __future__ import annotations

import logging
import struct
import threading
from enum import Enum
from pathlib import Path
from typing import Optional

from discverify.common.exceptions import ContractViolation
from discverify.common.models import (
    DiscIdentity,
    Problem,
    ReferenceStatus,
    ScanState,
    Severity,
    VerificationOptions,
    VerificationResult,
)
from discverify.core.checks import RegionTracker, get_checker_for_platform
from discverify.core.config_manager import ConfigManager
from discverify.core.engine import ScanEngine
from discverify.core.reporting import ResultAggregator
from discverify.logging_cfg import get_logger, log_call, set_correlation_id
from discverify.verification.base import ReferenceDatabase
from discverify.verification.hasher import HashSet
from discverify.verification.matcher import ReferenceMatcher
from discverify.verification.problems import ProblemCollector
from discverify.volume import DiscVolume, open_volume


class SessionState(Enum):
    CREATED = "created"
    STARTED = "started"
    SCANNING = "scanning"
    COMPLETED = "completed"


class VerificationSession:
    """
    Verificação de uma imagem de disco, conduzida pelo chamador.

    Uso:
        with VerificationSession.open(path, options) as session:
            session.start()
            while session.bytes_processed != session.total_bytes:
                session.process()
            session.finish()
            result = session.result

    Os getters podem ser chamados a qualquer momento; antes de `finish()`
    devolvem uma vista parcial.
    """

    def __init__(
        self,
        volume: DiscVolume,
        options: Optional[VerificationOptions] = None,
        *,
        reference_db: Optional[ReferenceDatabase] = None,
        settings: Optional[ConfigManager] = None,
    ):
        self.volume = volume
        self.options = options or VerificationOptions.defaults()
        self.settings = settings or ConfigManager(config_file=None)
        self.logger = get_logger("core.session")
        self._reference_db = reference_db
        self._lock = threading.Lock()

        self._state = SessionState.CREATED
        self._problems = ProblemCollector()
        self._engine: Optional[ScanEngine] = None
        self._matcher: Optional[ReferenceMatcher] = None
        self._result: Optional[VerificationResult] = None
        self._closed = False

    @classmethod
    def open(
        cls,
        path: Path | str,
        options: Optional[VerificationOptions] = None,
        *,
        reference_db: Optional[ReferenceDatabase] = None,
        settings: Optional[ConfigManager] = None,
    ) -> "VerificationSession":
        """Abre a imagem. Lança VolumeOpenError se não for um disco legível."""
        set_correlation_id()
        volume = open_volume(path)
        return cls(volume, options, reference_db=reference_db, settings=settings)

    # -- state ----------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def identity(self) -> DiscIdentity:
        return self.volume.identity

    @property
    def bytes_processed(self) -> int:
        if self._engine is None:
            return 0
        return self._engine.bytes_processed

    @property
    def total_bytes(self) -> int:
        return self.volume.size

    @property
    def finished(self) -> bool:
        return self._state == SessionState.COMPLETED

    @property
    def scan_state(self) -> ScanState:
        return ScanState(self.bytes_processed, self.total_bytes, self.finished)

    @property
    def problems(self) -> tuple[Problem, ...]:
        return self._problems.snapshot()

    @property
    def result(self) -> VerificationResult:
        if self._result is not None:
            return self._result
        return ResultAggregator.assemble(
            ReferenceStatus.UNKNOWN, "", None, self._problems.snapshot(), self.scan_state
        )

    def set_reference_database(self, database: ReferenceDatabase) -> None:
        if self._state != SessionState.CREATED:
            raise ContractViolation("The reference database must be set before start()")
        self._reference_db = database

    # -- transitions ----------------------------------------------------------

    def start(self) -> None:
        """Prepara hashers, verificações estruturais e a leitura em segundo plano."""
        self._ensure_open()
        if self._state != SessionState.CREATED:
            return

        opts = self.options
        hashes = HashSet(crc32=opts.compute_crc32, md5=opts.compute_md5, sha1=opts.compute_sha1)

        checker = get_checker_for_platform(self.volume.platform)
        try:
            regions = checker.check(self.volume, self._problems)
        except OSError as e:
            self._problems.add(
                Severity.HIGH, f"The disc structure could not be read: {e.strerror or e}."
            )
            regions = []
        except (struct.error, ValueError) as e:
            self.logger.warning(f"Estrutura do disco inválida: {e}")
            self._problems.add(Severity.HIGH, "The disc structure is malformed.")
            regions = []

        self._engine = ScanEngine(
            self.volume,
            hashes,
            self._problems,
            RegionTracker(regions),
            chunk_size=self.settings.chunk_size,
        )
        self._engine.start()

        if opts.use_reference_database:
            self._matcher = ReferenceMatcher(self._resolve_reference_db(), self.identity)
            self._matcher.prepare()

        self._state = SessionState.STARTED
        self.logger.info(
            f"A verificar {self.volume.path.name} ({self.identity.game_id}, "
            f"{self.total_bytes} bytes, hashes: {', '.join(hashes.algorithms) or 'nenhum'})"
        )

    def process(self) -> None:
        """Processa um bloco. Sem efeito depois de todos os bytes processados."""
        self._ensure_open()
        if self._state == SessionState.CREATED:
            raise ContractViolation("process() called before start()")
        if self._state == SessionState.COMPLETED:
            return
        self._state = SessionState.SCANNING
        self._engine.process()

    @log_call(level=logging.DEBUG)
    def finish(self) -> None:
        """Finaliza os hashes e, se pedido, compara com a base de dados de referência."""
        self._ensure_open()
        if self._state == SessionState.COMPLETED:
            return
        if self._engine is None or not self._engine.done:
            raise ContractViolation(
                "finish() called before every byte was processed",
                {"processed": self.bytes_processed, "total": self.total_bytes},
            )

        hashes = self._engine.hashes.finalize()
        self._engine.close()

        status, message = ReferenceStatus.UNKNOWN, ""
        if self._matcher is not None:
            outcome = self._matcher.resolve(hashes)
            status, message = outcome.status, outcome.message

        problems = self._problems.snapshot()
        with self._lock:
            self._state = SessionState.COMPLETED
            self._result = ResultAggregator.assemble(
                status, message, hashes, problems, self.scan_state
            )
        self.logger.info(f"Verificação concluída: {self._result.summary_text}")

    def close(self) -> None:
        """Para os workers e fecha a imagem. Pode ser chamado mais de uma vez."""
        if self._closed:
            return
        self._closed = True
        if self._engine is not None:
            self._engine.close()
        if self._matcher is not None:
            self._matcher.close()
        self.volume.close()

    def __enter__(self) -> "VerificationSession":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # -- helpers --------------------------------------------------------------

    def _ensure_open(self) -> None:
        if self._closed:
            raise ContractViolation("Session already closed")

    def _resolve_reference_db(self) -> ReferenceDatabase:
        if self._reference_db is None:
            from discverify.verification.redump import RedumpDatabase

            self._reference_db = RedumpDatabase(
                self.settings.cache_dir,
                base_url=self.settings.get("redump_base_url"),
                timeout=self.settings.get("request_timeout"),
            )
        return self._reference_db


def open_session(
    path: Path | str,
    options: Optional[VerificationOptions] = None,
    **kwargs,
) -> VerificationSession:
    return VerificationSession.open(path, options, **kwargs)
