from __future__ import annotations

import random

from abx.gaps import count_missing_sequences, find_missing_sequences, merge_packets

from conftest import pkt


def test_missing_exactly_the_removed():
    missing = {-2, 0, 7, 8, 9, 30}
    present = [pkt(s) for s in range(-5, 41) if s not in missing]
    random.Random(4).shuffle(present)
    assert find_missing_sequences(present) == sorted(missing)


def test_contiguous_has_no_gaps():
    assert find_missing_sequences([pkt(s) for s in range(100, 120)]) == []


def test_fewer_than_two():
    assert find_missing_sequences([]) == []
    assert find_missing_sequences([pkt(5)]) == []


def test_duplicates_are_not_gaps():
    assert find_missing_sequences([pkt(1), pkt(1), pkt(2), pkt(3), pkt(3)]) == []
    assert find_missing_sequences([pkt(4), pkt(1), pkt(1)]) == [2, 3]


def test_merge_fills_gap():
    merged = merge_packets([pkt(1), pkt(2), pkt(4), pkt(5)] + [pkt(3)])
    assert [p.sequence for p in merged] == [1, 2, 3, 4, 5]
    assert len(merged) == 5


def test_merge_later_wins():
    first = pkt(2, symbol="AAPL")
    second = pkt(2, symbol="AMZN")
    merged = merge_packets([pkt(3), first, pkt(1), second])
    assert [p.sequence for p in merged] == [1, 2, 3]
    assert merged[1] is second


def test_count_matches_list():
    present = [pkt(s) for s in (1, 2, 2, 5, 9)]
    assert count_missing_sequences(present) == len(find_missing_sequences(present)) == 5
    assert count_missing_sequences([pkt(3)]) == 0


def test_count_wide_span():
    assert count_missing_sequences([pkt(1), pkt(2**31 - 1)]) == 2**31 - 3
