"""In-memory inventory store.

Concurrency contract:
- The set of colors is fixed when the store is built
- Every read and write happens under one threading.Lock
- A whole cart is applied under a single lock acquisition
- Stock never goes below zero; an oversold quantity is reported as shortfall
"""

from __future__ import annotations

import logging
import threading
from collections import Counter
from dataclasses import dataclass
from typing import Iterable, Mapping

from storefront.errors import InsufficientStock, InvalidColor, ValidationFailure

logger = logging.getLogger(__name__)


@dataclass
class CartItem:
    """One cart line: a color and how many units of it."""

    color: str
    qty: int


@dataclass
class Decrement:
    """Outcome of taking purchased units out of stock."""

    color: str
    requested: int
    applied: int
    remaining: int

    @property
    def shortfall(self) -> int:
        return self.requested - self.applied


@dataclass
class OrderApplication:
    """Result of applying a paid cart to the store."""

    decrements: list[Decrement]
    ignored: list[CartItem]

    @property
    def oversold(self) -> list[Decrement]:
        return [d for d in self.decrements if d.shortfall > 0]


class InventoryStore:
    """Mapping of color -> non-negative quantity behind a lock."""

    def __init__(self, initial: Mapping[str, int]):
        for color, qty in initial.items():
            _check_quantity(qty)
        self._stock: dict[str, int] = dict(initial)
        self._lock = threading.Lock()

    @property
    def colors(self) -> frozenset[str]:
        return frozenset(self._stock)

    def get(self) -> dict[str, int]:
        """Return a snapshot copy of current stock."""
        with self._lock:
            return dict(self._stock)

    def set(self, color: str, qty: int) -> None:
        """Overwrite the stock for one color (admin path)."""
        _check_quantity(qty)
        with self._lock:
            if color not in self._stock:
                raise InvalidColor(color)
            previous = self._stock[color]
            self._stock[color] = qty
        logger.info("Inventory set: %s %d -> %d", color, previous, qty)

    def check_available(self, items: Iterable[CartItem]) -> None:
        """Raise InsufficientStock if the cart asks for more than is on hand.

        Advisory only: nothing is reserved, fulfillment re-reads stock.
        """
        wanted = Counter()
        for item in items:
            wanted[item.color] += item.qty

        with self._lock:
            snapshot = dict(self._stock)

        for color, qty in wanted.items():
            if color not in snapshot:
                raise InvalidColor(color)
            if qty > snapshot[color]:
                raise InsufficientStock(color, requested=qty, available=snapshot[color])

    def apply_order(self, items: Iterable[CartItem]) -> OrderApplication:
        """Decrement stock for every cart line atomically."""
        decrements: list[Decrement] = []
        ignored: list[CartItem] = []
        with self._lock:
            for item in items:
                result = self._decrement_locked(item.color, item.qty)
                if result is None:
                    ignored.append(item)
                else:
                    decrements.append(result)

        for item in ignored:
            logger.warning("Ignoring unknown color in paid order: %s x%d", item.color, item.qty)
        for d in decrements:
            if d.shortfall:
                logger.warning(
                    "Oversold %s: requested=%d applied=%d shortfall=%d",
                    d.color,
                    d.requested,
                    d.applied,
                    d.shortfall,
                )
        return OrderApplication(decrements=decrements, ignored=ignored)

    def _decrement_locked(self, color: str, qty: int) -> Decrement | None:
        if color not in self._stock:
            return None
        on_hand = self._stock[color]
        applied = min(on_hand, max(qty, 0))
        self._stock[color] = on_hand - applied
        return Decrement(
            color=color,
            requested=qty,
            applied=applied,
            remaining=self._stock[color],
        )


def _check_quantity(qty: object) -> None:
    # bool is an int subclass; reject it explicitly
    if isinstance(qty, bool) or not isinstance(qty, int) or qty < 0:
        raise ValidationFailure("Quantity must be a non-negative integer")
