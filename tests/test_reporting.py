import pytest

from discverify.common.models import (Hashes, Problem, ReferenceStatus,
                                      ScanState, Severity)
from discverify.core.reporting import (ResultAggregator, build_summary,
                                       severity_counts)

LOW = Problem(Severity.LOW, "low")
MEDIUM = Problem(Severity.MEDIUM, "medium")
HIGH = Problem(Severity.HIGH, "high")


def test_severity_counts():
    assert severity_counts([LOW, HIGH, LOW]) == "High: 1, Medium: 0, Low: 2"


@pytest.mark.parametrize(
    "status, problems, expected",
    [
        (ReferenceStatus.UNKNOWN, [], "No problems were found."),
        (ReferenceStatus.GOOD_DUMP, [], "This is a good dump."),
        (
            ReferenceStatus.BAD_DUMP,
            [],
            "This is a bad dump. This doesn't necessarily mean that the game won't run correctly.",
        ),
        (
            ReferenceStatus.UNKNOWN,
            [LOW, MEDIUM],
            "Problems with medium severity were found. The whole game or certain "
            "parts of the game might not work correctly. (High: 0, Medium: 1, Low: 1)",
        ),
        (
            ReferenceStatus.GOOD_DUMP,
            [LOW],
            "Problems with low severity were found. They will most likely not "
            "prevent the game from running. (High: 0, Medium: 0, Low: 1)",
        ),
        (
            ReferenceStatus.LOOKUP_ERROR,
            [],
            "No problems were found. The reference database could not be checked.",
        ),
    ],
)
def test_build_summary(status, problems, expected):
    assert build_summary(status, problems) == expected


def test_bad_dump_with_low_problems():
    text = build_summary(ReferenceStatus.BAD_DUMP, [LOW])
    assert text.startswith("This is a bad dump.")
    assert text.endswith("(High: 0, Medium: 0, Low: 1)")


def test_bad_dump_with_high_problems():
    text = build_summary(ReferenceStatus.BAD_DUMP, [HIGH])
    assert text.startswith("Problems with high severity were found.")


def test_summary_in_progress():
    state = ScanState(10, 100, finished=False)
    assert build_summary(ReferenceStatus.UNKNOWN, [], state) == (
        "Verification in progress: 10 of 100 bytes processed."
    )
    finished = ScanState(100, 100, finished=True)
    assert build_summary(ReferenceStatus.UNKNOWN, [], finished) == "No problems were found."


def test_assemble():
    result = ResultAggregator.assemble(
        ReferenceStatus.GOOD_DUMP,
        "Good dump: X",
        Hashes(crc32=b"\x01\x02\x03\x04"),
        [LOW],
        ScanState(1, 1, True),
    )
    assert result.reference_message == "Good dump: X"
    assert result.crc32 == b"\x01\x02\x03\x04"
    assert result.md5 is None
    assert result.problems == (LOW,)

    data = result.to_dict()
    assert data["reference_status"] == "GOOD_DUMP"
    assert data["crc32"] == "01020304"
    assert data["sha1"] is None
    assert data["problems"] == [{"severity": "LOW", "text": "low"}]


def test_assemble_without_hashes():
    result = ResultAggregator.assemble(ReferenceStatus.UNKNOWN, "", None, [])
    assert result.hashes.is_empty()
