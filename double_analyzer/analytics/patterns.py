from typing import Iterable, Sequence


def leading_run(labels: Sequence) -> tuple:
    """(label, length) of the run at the head of a newest-first sequence."""
    if not labels:
        return None, 0
    head = labels[0]
    n = 0
    for x in labels:
        if x != head:
            break
        n += 1
    return head, n


def runs(labels: Iterable, k: int = 3):
    """Maximal runs of length >= k as (start, end, label, length)."""
    labels = list(labels)
    out = []
    if not labels:
        return out
    cur = labels[0]
    start = 0
    for i in range(1, len(labels)):
        if labels[i] == cur:
            continue
        if i - start >= k:
            out.append((start, i - 1, cur, i - start))
        cur = labels[i]
        start = i
    # tail
    if len(labels) - start >= k:
        out.append((start, len(labels) - 1, cur, len(labels) - start))
    return out


def longest_run(labels: Iterable) -> tuple:
    """(label, length) of the longest run; earliest wins ties."""
    best = (None, 0)
    for _, _, label, length in runs(labels, k=1):
        if length > best[1]:
            best = (label, length)
    return best


def alternates(labels: Sequence, length: int = 4) -> bool:
    """True when the first ``length`` labels strictly alternate."""
    if len(labels) < length:
        return False
    head = labels[:length]
    return all(head[i] != head[i + 1] for i in range(length - 1))
