"""Pytest fixtures for storefront tests."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import fakeredis
import pytest
from fastapi.testclient import TestClient

from farmstore.cart_store import CartStore
from farmstore.main import create_app
from farmstore.models import Product
from farmstore.order_ids import OrderIdGenerator
from farmstore.order_service import OrderService
from farmstore.redis_client import RedisClient


class SteppingClock:
    """Clock that moves forward by a fixed step on every reading."""

    def __init__(self, start=None, step=timedelta(seconds=1)):
        self.current = start or datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self):
        value = self.current
        self.current += self.step
        return value


class ScriptedRandom:
    """Stands in for random.Random, returning the given numbers in order.

    The last number repeats once the script runs out.
    """

    def __init__(self, *numbers):
        self.numbers = list(numbers)

    def randint(self, a, b):
        if len(self.numbers) > 1:
            return self.numbers.pop(0)
        return self.numbers[0]


@pytest.fixture
def fake_redis():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def redis_client(fake_redis):
    return RedisClient(client=fake_redis)


@pytest.fixture
def clock():
    return SteppingClock()


@pytest.fixture
def order_service(redis_client, clock):
    return OrderService(redis=redis_client, clock=clock, status_policy="permissive")


@pytest.fixture
def app(order_service):
    return create_app(order_service=order_service)


@pytest.fixture
def api_client(app):
    return TestClient(app)


@pytest.fixture
def tomatoes():
    return Product(id="p1", name="Tomatoes", price=Decimal("50"), category="Vegetables")


@pytest.fixture
def onions():
    return Product(id="p2", name="Onions", price=Decimal("30"), category="Vegetables")


@pytest.fixture
def cart():
    return CartStore()


@pytest.fixture
def customer_form():
    return {
        "fullName": "Abebe Kebede",
        "phone": "0911223344",
        "address": "Bole, House 12",
        "region": "Addis Ababa",
        "notes": "Call before arriving",
    }


@pytest.fixture
def order_payload(customer_form):
    return {
        "customer": customer_form,
        "items": [
            {"productId": "p1", "name": "Tomatoes", "price": 50, "quantity": 2},
            {"productId": "p2", "name": "Onions", "price": 30, "quantity": 1},
        ],
        "total": 130,
    }


def make_generator(*numbers):
    return OrderIdGenerator(prefix="GAF", rng=ScriptedRandom(*numbers))


@pytest.fixture
def scripted_ids():
    """Factory for generators producing GAF-<n> for the given numbers."""
    return make_generator
