"""Flat verifier API for host bindings.

Usage:

    verifier = VolumeVerifier(path, reference_verification, crc32, md5, sha1)
    verifier.start()
    while verifier.get_bytes_processed() != verifier.get_total_bytes():
        verifier.process()
    verifier.finish()

start, process and finish may take some time to run. The result getters can
be called before processing is done, but the result will be incomplete.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from discverify.common.exceptions import ContractViolation
from discverify.common.models import Problem, ReferenceStatus, Severity, VerificationOptions
from discverify.core.config_manager import ConfigManager
from discverify.core.session import VerificationSession
from discverify.verification import hasher
from discverify.verification.base import ReferenceDatabase


class VolumeVerifier:
    def __init__(
        self,
        path: Path | str,
        reference_verification: bool,
        calculate_crc32: bool,
        calculate_md5: bool,
        calculate_sha1: bool,
        *,
        reference_db: Optional[ReferenceDatabase] = None,
        settings: Optional[ConfigManager] = None,
    ):
        options = VerificationOptions(
            use_reference_database=reference_verification,
            compute_crc32=calculate_crc32,
            compute_md5=calculate_md5,
            compute_sha1=calculate_sha1,
        )
        self._session = VerificationSession.open(
            path, options, reference_db=reference_db, settings=settings
        )

    @property
    def session(self) -> VerificationSession:
        return self._session

    def start(self) -> None:
        self._session.start()

    def process(self) -> None:
        self._session.process()

    def get_bytes_processed(self) -> int:
        return self._session.bytes_processed

    def get_total_bytes(self) -> int:
        return self._session.total_bytes

    def finish(self) -> None:
        self._session.finish()

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> "VolumeVerifier":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def get_result_summary_text(self) -> str:
        return self._session.result.summary_text

    def get_result_reference_status(self) -> ReferenceStatus:
        return self._session.result.reference_status

    def get_result_reference_message(self) -> str:
        return self._session.result.reference_message

    def get_result_crc32(self) -> Optional[bytes]:
        return self._session.result.crc32

    def get_result_md5(self) -> Optional[bytes]:
        return self._session.result.md5

    def get_result_sha1(self) -> Optional[bytes]:
        return self._session.result.sha1

    def get_result_problem_count(self) -> int:
        return len(self._session.result.problems)

    def get_result_problem_severity(self, i: int) -> Severity:
        return self._problem(i).severity

    def get_result_problem_text(self, i: int) -> str:
        return self._problem(i).text

    def _problem(self, i: int) -> Problem:
        problems = self._session.result.problems
        if not isinstance(i, int) or not 0 <= i < len(problems):
            raise ContractViolation(
                f"Problem index {i} out of range", {"count": len(problems)}
            )
        return problems[i]

    @staticmethod
    def should_calculate_crc32_by_default() -> bool:
        return hasher.should_compute_crc32_by_default()

    @staticmethod
    def should_calculate_md5_by_default() -> bool:
        return hasher.should_compute_md5_by_default()

    @staticmethod
    def should_calculate_sha1_by_default() -> bool:
        return hasher.should_compute_sha1_by_default()
