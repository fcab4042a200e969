"""
Backports of standard library helpers missing on older interpreters.
"""

import itertools
from collections.abc import Iterable, Iterator
from typing import TypeVar

T = TypeVar("T")


def batched(iterable: Iterable[T], n: int) -> Iterator[tuple[T, ...]]:
    """
    Yield successive tuples of ``n`` items; the final tuple may be shorter.

    Delegates to ``itertools.batched`` on Python 3.12+.

    Raises:
        ValueError: If n < 1.
    """
    if n < 1:
        msg = "n must be at least one"
        raise ValueError(msg)

    if hasattr(itertools, "batched"):
        yield from itertools.batched(iterable, n)
        return

    it = iter(iterable)
    while batch := tuple(itertools.islice(it, n)):
        yield batch
