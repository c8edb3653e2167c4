from __future__ import annotations

from typing import Optional, Sequence

from discverify.common.models import (
    Hashes,
    Problem,
    ReferenceStatus,
    ScanState,
    Severity,
    VerificationResult,
)

_SEVERITY_SENTENCES = {
    Severity.LOW: (
        "Problems with low severity were found. They will most likely not "
        "prevent the game from running."
    ),
    Severity.MEDIUM: (
        "Problems with medium severity were found. The whole game or certain "
        "parts of the game might not work correctly."
    ),
    Severity.HIGH: (
        "Problems with high severity were found. The game will most likely not "
        "work at all."
    ),
}


def severity_counts(problems: Sequence[Problem]) -> str:
    counts = {s: 0 for s in Severity}
    for problem in problems:
        counts[problem.severity] += 1
    return ", ".join(f"{s.label}: {counts[s]}" for s in sorted(Severity, reverse=True))


def build_summary(
    status: ReferenceStatus,
    problems: Sequence[Problem],
    state: Optional[ScanState] = None,
) -> str:
    """One line describing the outcome. Pass `state` for an unfinished scan."""
    highest = max((p.severity for p in problems), default=None)

    if state is not None and not state.finished:
        text = (
            f"Verification in progress: {state.bytes_processed} of "
            f"{state.total_bytes} bytes processed."
        )
    elif status == ReferenceStatus.BAD_DUMP and (highest is None or highest <= Severity.LOW):
        text = (
            "This is a bad dump. This doesn't necessarily mean that the game "
            "won't run correctly."
        )
    elif highest is None:
        if status == ReferenceStatus.GOOD_DUMP:
            text = "This is a good dump."
        else:
            text = "No problems were found."
    else:
        text = _SEVERITY_SENTENCES[highest]

    if status == ReferenceStatus.LOOKUP_ERROR:
        text += " The reference database could not be checked."
    if problems:
        text += f" ({severity_counts(problems)})"
    return text


class ResultAggregator:
    """Assembles the read-only result from what the session accumulated."""

    @staticmethod
    def assemble(
        status: ReferenceStatus,
        message: str,
        hashes: Optional[Hashes],
        problems: Sequence[Problem],
        state: Optional[ScanState] = None,
    ) -> VerificationResult:
        hashes = hashes or Hashes()
        return VerificationResult(
            summary_text=build_summary(status, problems, state),
            reference_status=status,
            reference_message=message,
            crc32=hashes.crc32,
            md5=hashes.md5,
            sha1=hashes.sha1,
            problems=tuple(problems),
        )
