"""Tests for the cart store."""

import json
import random
from decimal import Decimal

import pytest

from farmstore.cart_store import CartStore, JsonFileCartStorage, default_cart_storage
from farmstore.config import Config
from farmstore.exceptions import ValidationError
from farmstore.models import Product


class TestAddItem:
    def test_add_new_product(self, cart, tomatoes):
        line = cart.add_item(tomatoes)
        assert line.quantity == 1
        assert [l.product.id for l in cart.lines] == ["p1"]

    def test_adding_same_product_merges_lines(self, cart, tomatoes):
        cart.add_item(tomatoes, 2)
        cart.add_item(tomatoes, 3)
        assert len(cart.lines) == 1
        assert cart.get_line("p1").quantity == 5

    def test_lines_keep_insertion_order(self, cart, tomatoes, onions):
        cart.add_item(onions)
        cart.add_item(tomatoes)
        cart.add_item(onions)
        assert [l.product.id for l in cart.lines] == ["p2", "p1"]

    def test_no_upper_bound(self, cart, tomatoes):
        cart.add_item(tomatoes, 1000)
        assert cart.totals().total_items == 1000

    @pytest.mark.parametrize("quantity", [0, -2])
    def test_non_positive_quantity_rejected(self, cart, tomatoes, quantity):
        with pytest.raises(ValidationError):
            cart.add_item(tomatoes, quantity)
        assert cart.is_empty


class TestRemoveItem:
    def test_remove_existing(self, cart, tomatoes, onions):
        cart.add_item(tomatoes)
        cart.add_item(onions)
        assert cart.remove_item("p1") is True
        assert [l.product.id for l in cart.lines] == ["p2"]

    def test_remove_missing_is_noop(self, cart, tomatoes):
        cart.add_item(tomatoes)
        assert cart.remove_item("nope") is False
        assert len(cart.lines) == 1


class TestUpdateQuantity:
    def test_set_quantity(self, cart, tomatoes):
        cart.add_item(tomatoes)
        cart.update_quantity("p1", 4)
        assert cart.get_line("p1").quantity == 4

    @pytest.mark.parametrize("quantity", [0, -1, -50])
    def test_quantity_never_below_one(self, cart, tomatoes, quantity):
        cart.add_item(tomatoes, 3)
        cart.update_quantity("p1", quantity)
        assert cart.get_line("p1").quantity == 1

    def test_missing_product_is_noop(self, cart):
        assert cart.update_quantity("p1", 3) is None
        assert cart.is_empty


class TestTotals:
    def test_empty_cart(self, cart):
        totals = cart.totals()
        assert totals.total_items == 0
        assert totals.total_price == Decimal("0")

    def test_totals(self, cart, tomatoes, onions):
        cart.add_item(tomatoes, 2)
        cart.add_item(onions)
        totals = cart.totals()
        assert totals.total_items == 3
        assert totals.total_price == Decimal("130")

    def test_fractional_prices_sum_exactly(self, cart):
        cart.add_item(Product(id="a", name="Coffee", price=Decimal("0.1")))
        cart.add_item(Product(id="b", name="Honey", price=Decimal("0.2")))
        assert cart.totals().total_price == Decimal("0.3")

    def test_totals_match_lines_after_random_operations(self):
        rng = random.Random(1234)
        products = [
            Product(id=f"p{i}", name=f"Product {i}", price=Decimal(rng.randint(1, 500)))
            for i in range(6)
        ]
        cart = CartStore()
        for _ in range(300):
            product = rng.choice(products)
            operation = rng.choice(["add", "remove", "update"])
            if operation == "add":
                cart.add_item(product, rng.randint(1, 5))
            elif operation == "remove":
                cart.remove_item(product.id)
            else:
                cart.update_quantity(product.id, rng.randint(-3, 10))

            totals = cart.totals()
            assert totals.total_items == sum(l.quantity for l in cart.lines)
            assert totals.total_price == sum(
                (l.product.price * l.quantity for l in cart.lines), Decimal("0")
            )
            assert all(l.quantity >= 1 for l in cart.lines)
            ids = [l.product.id for l in cart.lines]
            assert len(ids) == len(set(ids))

    def test_clear(self, cart, tomatoes, onions):
        cart.add_item(tomatoes)
        cart.add_item(onions)
        cart.clear()
        assert cart.is_empty
        assert cart.totals().total_items == 0


class TestListeners:
    def test_listener_called_on_change(self, cart, tomatoes):
        seen = []
        cart.subscribe(lambda store: seen.append(store.totals().total_items))
        cart.add_item(tomatoes, 2)
        cart.update_quantity("p1", 5)
        cart.remove_item("p1")
        assert seen == [2, 5, 0]

    def test_no_notification_for_noop(self, cart):
        seen = []
        cart.subscribe(lambda store: seen.append(True))
        cart.remove_item("missing")
        cart.update_quantity("missing", 2)
        assert seen == []

    def test_unsubscribe(self, cart, tomatoes):
        seen = []
        unsubscribe = cart.subscribe(lambda store: seen.append(True))
        unsubscribe()
        cart.add_item(tomatoes)
        assert seen == []


class TestPersistence:
    def test_cart_survives_reload(self, tmp_path, tomatoes, onions):
        path = tmp_path / "cart.json"
        cart = CartStore(storage=JsonFileCartStorage(path))
        cart.add_item(tomatoes, 2)
        cart.add_item(onions)

        reloaded = CartStore(storage=JsonFileCartStorage(path))
        assert [l.product.id for l in reloaded.lines] == ["p1", "p2"]
        assert reloaded.totals().total_price == Decimal("130")

    def test_clear_is_persisted(self, tmp_path, tomatoes):
        path = tmp_path / "cart.json"
        cart = CartStore(storage=JsonFileCartStorage(path))
        cart.add_item(tomatoes)
        cart.clear()
        assert json.loads(path.read_text()) == []
        assert CartStore(storage=JsonFileCartStorage(path)).is_empty

    def test_missing_file_gives_empty_cart(self, tmp_path):
        cart = CartStore(storage=JsonFileCartStorage(tmp_path / "none.json"))
        assert cart.is_empty

    def test_unreadable_file_gives_empty_cart(self, tmp_path):
        path = tmp_path / "cart.json"
        path.write_text("{not json")
        assert CartStore(storage=JsonFileCartStorage(path)).is_empty

    def test_invalid_lines_skipped(self, tmp_path):
        path = tmp_path / "cart.json"
        path.write_text(json.dumps([
            {"product": {"id": "p1", "name": "Tomatoes", "price": "50"}, "quantity": 2},
            {"product": {"id": "p2"}, "quantity": 1},
            {"product": {"id": "p3", "name": "Garlic", "price": "10"}, "quantity": 0},
        ]))
        cart = CartStore(storage=JsonFileCartStorage(path))
        assert [l.product.id for l in cart.lines] == ["p1"]

    def test_default_storage_follows_config(self, tmp_path, monkeypatch):
        monkeypatch.setattr(Config, "CART_STORAGE_PATH", None)
        assert default_cart_storage() is None

        monkeypatch.setattr(Config, "CART_STORAGE_PATH", str(tmp_path / "carts" / "cart.json"))
        storage = default_cart_storage()
        assert isinstance(storage, JsonFileCartStorage)
        CartStore(storage=storage).add_item(Product(id="p9", name="Teff", price=Decimal("80")))
        assert (tmp_path / "carts" / "cart.json").exists()
