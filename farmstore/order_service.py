"""
Order service: creation, listing, and status changes for persisted orders.
"""
import json
import uuid
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence, Set

from pydantic import ValidationError as PydanticValidationError

from farmstore.atomic_scripts import AtomicScripts, OK, MISSING, REJECTED
from farmstore.config import Config
from farmstore.exceptions import (
    InvalidStatusError,
    OrderIdCollisionError,
    OrderNotFoundError,
    StatusTransitionError,
    ValidationError
)
from farmstore.models import CustomerInfo, Order, OrderItem, OrderStatus
from farmstore.order_ids import OrderIdGenerator
from farmstore.redis_client import RedisClient, get_redis_client

logger = logging.getLogger(__name__)

PERMISSIVE = "permissive"
STRICT = "strict"
STATUS_POLICIES = (PERMISSIVE, STRICT)

# Forward moves allowed under the strict policy; re-setting the current status is always allowed
STRICT_TRANSITIONS: Dict[OrderStatus, Set[OrderStatus]] = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_status(value: str) -> OrderStatus:
    """Convert a raw status string, rejecting anything outside the vocabulary"""
    try:
        return OrderStatus(value)
    except ValueError:
        raise InvalidStatusError(str(value))


class OrderService:
    """Service for order operations"""

    ORDER_INDEX_KEY = "orders:by_created"
    ORDER_SEQUENCE_KEY = "orders:sequence"

    def __init__(
        self,
        redis: Optional[RedisClient] = None,
        id_generator: Optional[OrderIdGenerator] = None,
        clock: Callable[[], datetime] = utcnow,
        status_policy: Optional[str] = None,
        max_attempts: Optional[int] = None
    ):
        self.redis = redis or get_redis_client()
        self.scripts = AtomicScripts(self.redis)
        self.id_generator = id_generator or OrderIdGenerator()
        self.clock = clock
        self.status_policy = status_policy or Config.ORDER_STATUS_POLICY
        self.max_attempts = max_attempts or Config.ORDER_ID_MAX_ATTEMPTS

        if self.status_policy not in STATUS_POLICIES:
            raise ValidationError(
                f"status_policy must be one of {', '.join(STATUS_POLICIES)}"
            )

    def _get_order_key(self, record_id: str) -> str:
        """Generate Redis key for an order document"""
        return f"order:{record_id}"

    def _get_ref_key(self, order_id: str) -> str:
        """Generate Redis key claiming a human-readable order id"""
        return f"order_ref:{order_id}"

    def create_order(
        self,
        customer: CustomerInfo,
        items: Sequence[OrderItem],
        total: float
    ) -> Order:
        """
        Persist a new order in the pending state.

        A fresh identifier is drawn for every attempt; an attempt fails only
        when the identifier is already claimed by another order.

        Returns:
            The stored Order

        Raises:
            ValidationError: If customer, items or total are missing
            OrderIdCollisionError: If every attempt hit a taken identifier
        """
        if customer is None:
            raise ValidationError("Customer details are required")
        if not items:
            raise ValidationError("Order must contain at least one item")
        if total is None:
            raise ValidationError("Order total is required")

        now = self.clock()
        timestamp = now.isoformat()
        fields = {
            "customer": customer.model_dump_json(by_alias=True),
            "items": json.dumps([item.model_dump(by_alias=True) for item in items]),
            "total": repr(float(total)),
            "status": OrderStatus.PENDING.value,
            "createdAt": timestamp,
            "updatedAt": timestamp,
        }

        for attempt in range(1, self.max_attempts + 1):
            order_id = self.id_generator.generate()
            record_id = uuid.uuid4().hex

            result = self.scripts.create_order(
                ref_key=self._get_ref_key(order_id),
                order_key=self._get_order_key(record_id),
                index_key=self.ORDER_INDEX_KEY,
                sequence_key=self.ORDER_SEQUENCE_KEY,
                record_id=record_id,
                fields={"orderId": order_id, **fields}
            )

            if result == OK:
                logger.info(
                    f"Order created: {order_id}",
                    extra={"order_id": order_id, "items": len(items), "attempt": attempt}
                )
                return self._to_order(record_id, {"orderId": order_id, **fields})

            logger.warning(
                f"Order identifier {order_id} already taken (attempt {attempt}/{self.max_attempts})",
                extra={"order_id": order_id, "attempt": attempt}
            )

        raise OrderIdCollisionError(self.max_attempts)

    def get_order(self, record_id: str) -> Order:
        """Get a single order by internal id"""
        data = self.redis.hgetall(self._get_order_key(record_id))
        if not data:
            raise OrderNotFoundError(record_id)
        return self._to_order(record_id, data)

    def list_orders(self) -> List[Order]:
        """Get all orders, newest first"""
        orders: List[Order] = []
        for record_id in self.redis.zrevrange(self.ORDER_INDEX_KEY):
            data = self.redis.hgetall(self._get_order_key(record_id))
            if not data:
                continue
            try:
                orders.append(self._to_order(record_id, data))
            except (json.JSONDecodeError, KeyError, PydanticValidationError) as e:
                # Skip unreadable documents
                logger.warning(f"Failed to parse order {record_id}: {e}")
        return orders

    def can_transition(self, current: OrderStatus, new: OrderStatus) -> bool:
        """Whether the active policy allows moving from current to new"""
        if self.status_policy == PERMISSIVE or current == new:
            return True
        return new in STRICT_TRANSITIONS[current]

    def _allowed_from(self, new: OrderStatus) -> List[str]:
        if self.status_policy == PERMISSIVE:
            return []
        return [status.value for status in OrderStatus if self.can_transition(status, new)]

    def set_status(self, record_id: str, new_status: str) -> Order:
        """
        Change an order's status.

        Returns:
            The updated Order

        Raises:
            InvalidStatusError: If new_status is not a known status
            OrderNotFoundError: If record_id does not resolve to an order
            StatusTransitionError: If the status policy forbids the change
        """
        status = parse_status(new_status)
        order_key = self._get_order_key(record_id)

        result = self.scripts.set_status(
            order_key=order_key,
            status=status.value,
            updated_at=self.clock().isoformat(),
            allowed_from=self._allowed_from(status)
        )

        if result == MISSING:
            raise OrderNotFoundError(record_id)
        if result == REJECTED:
            current = self.redis.hget(order_key, "status")
            raise StatusTransitionError(current, status.value)

        order = self.get_order(record_id)
        logger.info(
            f"Order {order.order_id} status set to {status.value}",
            extra={"order_id": order.order_id, "status": status.value}
        )
        return order

    def _to_order(self, record_id: str, data: Dict[str, str]) -> Order:
        """Build an Order from its stored hash fields"""
        return Order.model_validate({
            "_id": record_id,
            "orderId": data["orderId"],
            "customer": json.loads(data["customer"]),
            "items": json.loads(data["items"]),
            "total": float(data["total"]),
            "status": data["status"],
            "createdAt": data["createdAt"],
            "updatedAt": data["updatedAt"],
        })
