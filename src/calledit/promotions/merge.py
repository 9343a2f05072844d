"""Interleave promotional items into a prediction stream."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

T = TypeVar("T")
P = TypeVar("P")


def interleave_promotions(items: Sequence[T], pool: Sequence[P], interval: int = 5) -> list[T | P]:
    """Insert a promo after the first item and then after every ``interval`` items.

    Promos are taken from ``pool`` in index order and cycle when the pool is
    shorter than the number of slots. An empty pool returns ``items`` unchanged.

    >>> interleave_promotions([1, 2, 3, 4, 5, 6, 7], ["a", "b"])
    [1, 'a', 2, 3, 4, 5, 6, 'b', 7]
    """
    if not pool:
        return list(items)
    if interval < 1:
        msg = "interval must be positive"
        raise ValueError(msg)

    merged: list[T | P] = []
    slot = 0
    for index, item in enumerate(items):
        merged.append(item)
        if index % interval == 0:
            merged.append(pool[slot % len(pool)])
            slot += 1
    return merged
