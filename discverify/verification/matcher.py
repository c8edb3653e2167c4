"""Classify finished digests against a reference database."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

from discverify.common.exceptions import ReferenceLookupError, format_exception_chain
from discverify.common.models import DiscIdentity, Hashes, ReferenceStatus
from discverify.verification.base import ReferenceDatabase, ReferenceEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MatchOutcome:
    status: ReferenceStatus
    message: str


def digests_match(computed: Hashes, entry: ReferenceEntry) -> bool:
    """True when every digest known on both sides is equal and at least one was compared."""
    expected = entry.hashes
    compared = 0
    for name, value in computed.items():
        reference = getattr(expected, name)
        if reference is None:
            continue
        if reference != value:
            return False
        compared += 1
    return compared > 0


def _describe(entry: ReferenceEntry) -> str:
    revision = f" (Rev {entry.revision})" if entry.revision else ""
    return f"{entry.game_name}{revision}"


def classify(
    identity: DiscIdentity, entries: list[ReferenceEntry], hashes: Hashes
) -> MatchOutcome:
    if not entries:
        return MatchOutcome(
            ReferenceStatus.UNKNOWN,
            f"Unknown disc: {identity.game_id} has no record in the reference database.",
        )
    if hashes.is_empty():
        return MatchOutcome(
            ReferenceStatus.UNKNOWN,
            "No checksums were calculated, so the dump could not be compared "
            "with the reference database.",
        )

    for entry in entries:
        if digests_match(hashes, entry):
            return MatchOutcome(ReferenceStatus.GOOD_DUMP, f"Good dump: {_describe(entry)}")

    same_revision = [e for e in entries if e.revision == identity.revision]
    if same_revision:
        expected = ", ".join(_describe(e) for e in same_revision)
        return MatchOutcome(
            ReferenceStatus.BAD_DUMP,
            f"Bad dump: the checksums do not match {expected}.",
        )
    known = ", ".join(sorted({f"Rev {e.revision}" for e in entries}))
    return MatchOutcome(
        ReferenceStatus.BAD_DUMP,
        f"Bad dump: revision {identity.revision} of {identity.game_id} is not known; "
        f"known revisions are {known}.",
    )


class ReferenceMatcher:
    """
    Runs the database lookup in the background while the image is scanned,
    then compares the finished digests with the result.
    """

    def __init__(self, database: ReferenceDatabase, identity: DiscIdentity):
        self.database = database
        self.identity = identity
        self._executor: Optional[ThreadPoolExecutor] = None
        self._future: Optional[Future] = None

    def prepare(self) -> None:
        if self._future is not None:
            return
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="reference-lookup")
        self._future = self._executor.submit(self.database.lookup, self.identity)

    def resolve(self, hashes: Hashes) -> MatchOutcome:
        self.prepare()
        try:
            entries = self._future.result()
        except ReferenceLookupError as e:
            logger.warning("Reference lookup failed: %s", format_exception_chain(e))
            return MatchOutcome(ReferenceStatus.LOOKUP_ERROR, str(e))
        finally:
            self.close()

        outcome = classify(self.identity, entries, hashes)
        logger.info("Reference check for %s: %s", self.identity.game_id, outcome.message)
        return outcome

    def close(self) -> None:
        if self._future is not None:
            self._future.cancel()
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
