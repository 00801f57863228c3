"""Line-level diff between two text blobs"""
from enum import Enum
from typing import List, NamedTuple, Sequence, Tuple


class DiffKind(Enum):
    UNCHANGED = 'unchanged'
    ADDED = 'added'
    REMOVED = 'removed'


class DiffOp(NamedTuple):
    kind: DiffKind
    lines: str

    @property
    def line_count(self) -> int:
        return len(self.lines.splitlines())


def _lcs_table(a: Sequence[str], b: Sequence[str]) -> List[List[int]]:
    """``table[i][j]`` is the LCS length of ``a[i:]`` and ``b[j:]``."""
    n, m = len(a), len(b)
    table = [[0] * (m + 1) for _ in range(n + 1)]
    for i in range(n - 1, -1, -1):
        row, below, ai = table[i], table[i + 1], a[i]
        for j in range(m - 1, -1, -1):
            if ai == b[j]:
                row[j] = below[j + 1] + 1
            else:
                row[j] = max(below[j], row[j + 1])
    return table


def diff(old: str, new: str) -> List[DiffOp]:
    """Align ``old`` and ``new`` on a longest common subsequence of lines.

    Matching lines become ``UNCHANGED``; each gap between matches is reported
    as its ``REMOVED`` lines followed by its ``ADDED`` lines. On ties the walk
    drops an old line before taking a new one, so the output is fixed for a
    given input. Line terminators are kept: joining all non-added ops rebuilds
    ``old`` and joining all non-removed ops rebuilds ``new``.
    """
    a = old.splitlines(keepends=True)
    b = new.splitlines(keepends=True)

    # common prefix and suffix never need the table
    lo = 0
    while lo < len(a) and lo < len(b) and a[lo] == b[lo]:
        lo += 1
    hi_a, hi_b = len(a), len(b)
    while hi_a > lo and hi_b > lo and a[hi_a - 1] == b[hi_b - 1]:
        hi_a -= 1
        hi_b -= 1

    ops: List[DiffOp] = []
    _push(ops, DiffKind.UNCHANGED, a[:lo])

    mid_a, mid_b = a[lo:hi_a], b[lo:hi_b]
    table = _lcs_table(mid_a, mid_b)
    removed: List[str] = []
    added: List[str] = []
    i = j = 0
    while i < len(mid_a) and j < len(mid_b):
        if mid_a[i] == mid_b[j]:
            _flush(ops, removed, added)
            _push(ops, DiffKind.UNCHANGED, [mid_a[i]])
            i += 1
            j += 1
        elif table[i + 1][j] >= table[i][j + 1]:
            removed.append(mid_a[i])
            i += 1
        else:
            added.append(mid_b[j])
            j += 1
    removed.extend(mid_a[i:])
    added.extend(mid_b[j:])
    _flush(ops, removed, added)

    _push(ops, DiffKind.UNCHANGED, a[hi_a:])
    return ops


def _flush(ops: List[DiffOp], removed: List[str], added: List[str]):
    _push(ops, DiffKind.REMOVED, removed)
    _push(ops, DiffKind.ADDED, added)
    removed.clear()
    added.clear()


def _push(ops: List[DiffOp], kind: DiffKind, lines: Sequence[str]):
    if not lines:
        return
    text = ''.join(lines)
    # consecutive matches arrive one line at a time
    if ops and ops[-1].kind is kind:
        ops[-1] = DiffOp(kind, ops[-1].lines + text)
    else:
        ops.append(DiffOp(kind, text))


def stats(ops: Sequence[DiffOp]) -> Tuple[int, int]:
    added = sum(op.line_count for op in ops if op.kind is DiffKind.ADDED)
    removed = sum(op.line_count for op in ops if op.kind is DiffKind.REMOVED)
    return added, removed
