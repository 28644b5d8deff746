"""Tests for the in-memory inventory store.

Tests:
- Snapshot reads and admin overwrites
- Unknown colors and invalid quantities
- Advisory stock checks for checkout
- Atomic order application, oversell clamping, concurrent writers
"""

from __future__ import annotations

import threading

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from storefront.errors import InsufficientStock, InvalidColor, ValidationFailure
from storefront.inventory.store import CartItem, InventoryStore

_COLORS = ["Red", "Blue", "Black"]


@pytest.fixture
def store() -> InventoryStore:
    return InventoryStore({"Red": 10, "Blue": 10, "Black": 0})


class TestReadsAndOverwrites:

    def test_get_returns_snapshot(self, store):
        snapshot = store.get()
        snapshot["Red"] = 999
        assert store.get()["Red"] == 10

    def test_set_known_color(self, store):
        store.set("Red", 3)
        assert store.get()["Red"] == 3

    def test_set_unknown_color_leaves_inventory_unchanged(self, store):
        before = store.get()
        with pytest.raises(InvalidColor):
            store.set("Purple", 5)
        assert store.get() == before
        assert "Purple" not in store.colors

    @pytest.mark.parametrize("qty", [-1, 1.5, "7", True, None])
    def test_set_rejects_non_integer_or_negative(self, store, qty):
        with pytest.raises(ValidationFailure):
            store.set("Red", qty)
        assert store.get()["Red"] == 10

    def test_initial_negative_rejected(self):
        with pytest.raises(ValidationFailure):
            InventoryStore({"Red": -1})


class TestCheckAvailable:

    def test_enough_stock(self, store):
        store.check_available([CartItem("Red", 10), CartItem("Blue", 1)])

    def test_insufficient_stock(self, store):
        with pytest.raises(InsufficientStock) as exc:
            store.check_available([CartItem("Red", 1000)])
        assert exc.value.color == "Red"
        assert exc.value.available == 10

    def test_quantities_summed_per_color(self, store):
        """Two lines of the same color count together."""
        with pytest.raises(InsufficientStock):
            store.check_available([CartItem("Red", 6), CartItem("Red", 6)])

    def test_unknown_color(self, store):
        with pytest.raises(InvalidColor):
            store.check_available([CartItem("Purple", 1)])

    def test_check_does_not_reserve(self, store):
        store.check_available([CartItem("Red", 5)])
        assert store.get()["Red"] == 10


class TestApplyOrder:

    def test_decrements_each_line(self, store):
        result = store.apply_order([CartItem("Red", 1), CartItem("Blue", 2)])
        assert store.get() == {"Red": 9, "Blue": 8, "Black": 0}
        assert [d.applied for d in result.decrements] == [1, 2]
        assert result.ignored == []
        assert result.oversold == []

    def test_unknown_color_ignored(self, store):
        result = store.apply_order([CartItem("Purple", 4), CartItem("Red", 1)])
        assert store.get()["Red"] == 9
        assert result.ignored == [CartItem("Purple", 4)]

    def test_oversell_clamps_at_zero(self, store):
        result = store.apply_order([CartItem("Black", 2)])
        assert store.get()["Black"] == 0
        assert result.oversold[0].shortfall == 2

    def test_concurrent_decrements_lose_nothing(self):
        store = InventoryStore({"Red": 1000})

        def worker():
            for _ in range(100):
                store.apply_order([CartItem("Red", 1)])

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert store.get()["Red"] == 200

    @given(
        start=st.dictionaries(st.sampled_from(_COLORS), st.integers(0, 50), min_size=1),
        cart=st.lists(
            st.tuples(st.sampled_from(_COLORS + ["Purple"]), st.integers(1, 30)),
            max_size=8,
        ),
    )
    @settings(max_examples=50)
    def test_stock_never_negative_and_units_accounted(self, start, cart):
        store = InventoryStore(start)
        result = store.apply_order([CartItem(c, q) for c, q in cart])
        after = store.get()

        assert all(v >= 0 for v in after.values())
        applied = sum(d.applied for d in result.decrements)
        assert sum(start.values()) - sum(after.values()) == applied
        assert all(i.color not in start for i in result.ignored)
