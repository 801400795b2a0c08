from __future__ import annotations

from typing import Iterable

from .packet import Packet


def find_missing_sequences(packets: Iterable[Packet]) -> list[int]:
    """Return every sequence strictly between adjacent received sequences.

    Input may be unordered and may repeat sequences; repeats are adjacent
    with no gap between them. Fewer than two packets means nothing is missing.
    """
    seqs = sorted(p.sequence for p in packets)
    missing: list[int] = []
    for cur, nxt in zip(seqs, seqs[1:]):
        missing.extend(range(cur + 1, nxt))
    return missing


def merge_packets(packets: Iterable[Packet]) -> list[Packet]:
    # later packets replace earlier ones with the same sequence
    by_seq: dict[int, Packet] = {}
    for p in packets:
        by_seq[p.sequence] = p
    return [by_seq[s] for s in sorted(by_seq)]


def count_missing_sequences(packets: Iterable[Packet]) -> int:
    """Size of ``find_missing_sequences`` without building the list."""
    seqs = sorted({p.sequence for p in packets})
    if len(seqs) < 2:
        return 0
    return (seqs[-1] - seqs[0] + 1) - len(seqs)
