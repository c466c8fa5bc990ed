"""Unit tests for the table cart."""
import random
from decimal import Decimal

import pytest

from tableside.services.cart.aggregator import Cart, cart_key, coerce_quantity
from tableside.services.cart.store import FileKeyValueStore, InMemoryKeyValueStore
from tableside.services.menu.base import MenuItem


def menu_item(item_id: str, price: str) -> MenuItem:
    return MenuItem(id=item_id, restaurant_id=1, name=item_id.title(), price=Decimal(price))


PIZZA = menu_item("pizza", "22.00")
SALAD = menu_item("salad", "16.50")
WATER = menu_item("water", "4.50")


class TestCoerceQuantity:
    """Test loose quantity parsing."""

    @pytest.mark.parametrize(
        "value, expected",
        [(3, 3), ("4", 4), (2.9, 2), ("1.5", 1), (0, 0), (-2, -2)],
    )
    def test_numbers_are_floored(self, value, expected):
        assert coerce_quantity(value, default=7) == expected

    @pytest.mark.parametrize("value", ["abc", None, float("nan"), float("inf"), True, [1]])
    def test_unparseable_falls_back_to_default(self, value):
        assert coerce_quantity(value, default=7) == 7


class TestCart:
    """Test cart operations."""

    def test_add_new_item(self):
        """Adding an item creates a line with quantity 1."""
        cart = Cart(1, InMemoryKeyValueStore())

        cart.add_item(PIZZA)

        assert len(cart.lines) == 1
        assert cart.get_line("pizza").quantity == 1
        assert cart.get_total_items() == 1

    def test_add_existing_item_increments(self):
        """Adding an item already in the cart bumps its quantity."""
        cart = Cart(1, InMemoryKeyValueStore())

        cart.add_item(PIZZA)
        cart.add_item(PIZZA, 2)

        assert len(cart.lines) == 1
        assert cart.get_line("pizza").quantity == 3

    def test_add_clamps_quantity_to_at_least_one(self):
        cart = Cart(1, InMemoryKeyValueStore())

        cart.add_item(PIZZA, 0)
        cart.add_item(SALAD, "garbage")

        assert cart.get_line("pizza").quantity == 1
        assert cart.get_line("salad").quantity == 1

    def test_update_quantity_to_zero_removes_line(self):
        """Setting quantity to 0 behaves like remove."""
        cart = Cart(1, InMemoryKeyValueStore())
        cart.add_item(PIZZA)
        cart.add_item(SALAD)

        cart.update_quantity("pizza", 0)

        assert cart.get_line("pizza") is None
        assert [line.item_id for line in cart.lines] == ["salad"]

    def test_update_quantity_negative_removes_line(self):
        cart = Cart(1, InMemoryKeyValueStore())
        cart.add_item(PIZZA)

        cart.update_quantity("pizza", -3)

        assert cart.is_empty()

    def test_update_quantity_unparseable_keeps_current(self):
        cart = Cart(1, InMemoryKeyValueStore())
        cart.add_item(PIZZA, 2)

        cart.update_quantity("pizza", "lots")

        assert cart.get_line("pizza").quantity == 2

    def test_update_unknown_item_is_noop(self):
        cart = Cart(1, InMemoryKeyValueStore())
        cart.add_item(PIZZA)

        assert cart.update_quantity("missing", 5) is None
        assert cart.get_total_items() == 1

    def test_totals(self):
        """Total price is the sum of price x quantity."""
        cart = Cart(1, InMemoryKeyValueStore())
        cart.add_item(PIZZA)
        cart.add_item(SALAD)
        cart.add_item(WATER, 2)

        assert cart.get_total_items() == 4
        assert cart.get_total_price() == Decimal("47.50")

    def test_empty_cart_totals(self):
        cart = Cart(1, InMemoryKeyValueStore())

        assert cart.is_empty()
        assert cart.get_total_items() == 0
        assert cart.get_total_price() == Decimal("0")

    def test_clear_removes_stored_cart(self):
        store = InMemoryKeyValueStore()
        cart = Cart(1, store)
        cart.add_item(PIZZA)

        cart.clear()

        assert cart.is_empty()
        assert store.get(cart_key(1)) is None

    def test_cart_survives_reload(self):
        """A reloaded cart sees every line that was saved."""
        store = InMemoryKeyValueStore()
        cart = Cart(1, store)
        cart.add_item(PIZZA, 2)
        cart.add_item(SALAD)

        reloaded = Cart.load(1, store)

        assert [(line.item_id, line.quantity) for line in reloaded.lines] == [
            ("pizza", 2),
            ("salad", 1),
        ]
        assert reloaded.get_total_price() == Decimal("60.50")

    def test_carts_are_per_table(self):
        store = InMemoryKeyValueStore()
        Cart(1, store).add_item(PIZZA)

        assert Cart.load(2, store).is_empty()

    def test_load_skips_unreadable_lines(self):
        store = InMemoryKeyValueStore()
        store.set(
            cart_key(1),
            [
                {"item_id": "pizza", "name": "Pizza", "unit_price": "22.00", "quantity": 1},
                {"item_id": "broken", "quantity": 0},
            ],
        )

        cart = Cart.load(1, store)

        assert [line.item_id for line in cart.lines] == ["pizza"]

    def test_file_store_round_trip(self, tmp_path):
        """Carts written to disk are read back by a new store instance."""
        Cart(1, FileKeyValueStore(str(tmp_path))).add_item(SALAD, 3)

        reloaded = Cart.load(1, FileKeyValueStore(str(tmp_path)))

        assert reloaded.get_line("salad").quantity == 3

    def test_file_store_corrupt_entry_reads_as_empty(self, tmp_path):
        store = FileKeyValueStore(str(tmp_path))
        Cart(1, store).add_item(SALAD)
        for path in tmp_path.glob("*.json"):
            path.write_text("{not json")

        assert Cart.load(1, store).is_empty()


class TestCartInvariants:
    """Random operation sequences keep the cart consistent."""

    @pytest.mark.parametrize("seed", range(20))
    def test_random_operations(self, seed):
        rng = random.Random(seed)
        items = [PIZZA, SALAD, WATER]
        store = InMemoryKeyValueStore()
        cart = Cart(7, store)
        expected = {}

        for _ in range(50):
            item = rng.choice(items)
            op = rng.choice(["add", "update", "remove"])
            if op == "add":
                quantity = rng.randint(1, 4)
                cart.add_item(item, quantity)
                expected[item.id] = expected.get(item.id, 0) + quantity
            elif op == "update":
                quantity = rng.randint(-2, 5)
                cart.update_quantity(item.id, quantity)
                if item.id in expected:
                    if quantity <= 0:
                        del expected[item.id]
                    else:
                        expected[item.id] = quantity
            else:
                cart.remove_item(item.id)
                expected.pop(item.id, None)

            ids = [line.item_id for line in cart.lines]
            assert len(ids) == len(set(ids))
            assert all(line.quantity >= 1 for line in cart.lines)
            assert {line.item_id: line.quantity for line in cart.lines} == expected
            assert cart.get_total_items() == sum(expected.values())
            assert cart.get_total_price() == sum(
                (line.unit_price * line.quantity for line in cart.lines), Decimal("0")
            )

        reloaded = Cart.load(7, store)
        assert {line.item_id: line.quantity for line in reloaded.lines} == expected
