"""Tests for the backfill table."""

from httpstat.phases import NO_DNS, PHASE_BY_MARK, REUSED, UNINSTRUMENTED, Mark, Phase

CANONICAL = list(Mark)


def test_backfills_are_canonical_prefixes() -> None:
    """Each rule fills a leading run of marks, so order is preserved."""
    for rule in (NO_DNS, UNINSTRUMENTED, REUSED):
        assert list(rule.fills) == CANONICAL[: len(rule.fills)]


def test_reused_covers_uninstrumented() -> None:
    assert set(UNINSTRUMENTED.fills) < set(REUSED.fills)
    assert Mark.TLS_DONE in REUSED.fills


def test_phase_lookup_latest_first() -> None:
    marks = [mark for mark, _ in PHASE_BY_MARK]
    assert marks == sorted(marks, key=CANONICAL.index, reverse=True)
    assert PHASE_BY_MARK[0] == (Mark.TRANSFER_DONE, Phase.DONE)
