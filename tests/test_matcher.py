from discverify.common.exceptions import DownloadError
from discverify.common.models import DiscIdentity, Hashes, ReferenceStatus
from discverify.verification.base import ReferenceDatabase, ReferenceEntry
from discverify.verification.matcher import (ReferenceMatcher, classify,
                                             digests_match)

IDENTITY = DiscIdentity("GZLE01", "gamecube", revision=0)
CRC = bytes.fromhex("d8e4d45a")
SHA1 = bytes.fromhex("6b5f06c10d50ebb8b2f1a3a2e2a0d2a95dae3c2f")


def _entry(crc="d8e4d45a", sha1=None, version=None, name="Wind Waker (USA)"):
    return ReferenceEntry(
        game_name=name, rom_name=f"{name}.iso", size=0,
        crc=crc, sha1=sha1, serial="DL-DOL-GZLE-USA", version=version,
    )


class FakeDatabase(ReferenceDatabase):
    def __init__(self, entries=None, error=None):
        self.entries = entries or []
        self.error = error
        self.calls = 0

    def lookup(self, identity):
        self.calls += 1
        if self.error:
            raise self.error
        return list(self.entries)


def test_digests_match_compares_common_digests_only():
    entry = _entry(crc="d8e4d45a", sha1=None)
    assert digests_match(Hashes(crc32=CRC, sha1=SHA1), entry)
    assert not digests_match(Hashes(crc32=b"\x00\x00\x00\x00"), entry)


def test_digests_match_needs_one_comparison():
    entry = _entry(crc=None, sha1="6b5f06c10d50ebb8b2f1a3a2e2a0d2a95dae3c2f")
    assert not digests_match(Hashes(crc32=CRC), entry)


def test_classify_good_dump():
    outcome = classify(IDENTITY, [_entry()], Hashes(crc32=CRC))
    assert outcome.status == ReferenceStatus.GOOD_DUMP
    assert "Wind Waker (USA)" in outcome.message


def test_classify_good_dump_other_revision_name():
    entries = [_entry(crc="00000001"), _entry(version="Rev 1")]
    outcome = classify(IDENTITY, entries, Hashes(crc32=CRC))
    assert outcome.status == ReferenceStatus.GOOD_DUMP
    assert "(Rev 1)" in outcome.message


def test_classify_bad_dump_same_revision():
    outcome = classify(IDENTITY, [_entry(crc="00000001")], Hashes(crc32=CRC))
    assert outcome.status == ReferenceStatus.BAD_DUMP
    assert "do not match" in outcome.message


def test_classify_bad_dump_unknown_revision():
    identity = DiscIdentity("GZLE01", "gamecube", revision=3)
    entries = [_entry(crc="00000001"), _entry(crc="00000002", version="Rev 1")]
    outcome = classify(identity, entries, Hashes(crc32=CRC))
    assert outcome.status == ReferenceStatus.BAD_DUMP
    assert "revision 3" in outcome.message
    assert "Rev 0, Rev 1" in outcome.message


def test_classify_unknown_disc():
    outcome = classify(IDENTITY, [], Hashes(crc32=CRC))
    assert outcome.status == ReferenceStatus.UNKNOWN
    assert "GZLE01" in outcome.message


def test_classify_without_digests():
    outcome = classify(IDENTITY, [_entry()], Hashes())
    assert outcome.status == ReferenceStatus.UNKNOWN
    assert "No checksums" in outcome.message


def test_matcher_runs_lookup_once():
    db = FakeDatabase([_entry()])
    matcher = ReferenceMatcher(db, IDENTITY)
    matcher.prepare()
    matcher.prepare()

    outcome = matcher.resolve(Hashes(crc32=CRC))

    assert outcome.status == ReferenceStatus.GOOD_DUMP
    assert db.calls == 1


def test_matcher_resolve_without_prepare():
    matcher = ReferenceMatcher(FakeDatabase(), IDENTITY)
    assert matcher.resolve(Hashes(crc32=CRC)).status == ReferenceStatus.UNKNOWN


def test_matcher_lookup_error():
    db = FakeDatabase(error=DownloadError("http://redump.org/datfile/gc/serial,version", "offline"))
    matcher = ReferenceMatcher(db, IDENTITY)
    matcher.prepare()

    outcome = matcher.resolve(Hashes(crc32=CRC))

    assert outcome.status == ReferenceStatus.LOOKUP_ERROR
    assert "offline" in outcome.message


def test_matcher_close_is_idempotent():
    matcher = ReferenceMatcher(FakeDatabase(), IDENTITY)
    matcher.prepare()
    matcher.close()
    matcher.close()
