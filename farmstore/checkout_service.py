"""
Checkout orchestration: validates delivery details, turns the cart into an
order submission, and tracks the submission until it succeeds or fails.
"""
import logging
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Protocol, Union

from pydantic import ValidationError as PydanticValidationError

from farmstore.cart_store import CartStore
from farmstore.exceptions import CheckoutStateError, EmptyCartError, OrderApiError
from farmstore.models import CustomerInfo, OrderStatus

logger = logging.getLogger(__name__)


class CheckoutState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    FAILED = "failed"


class OrdersApi(Protocol):
    async def create_order(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        ...


class CheckoutOrchestrator:
    """
    One checkout attempt for one cart.

    States: idle -> validating -> submitting -> success | failed. A failed
    checkout can be submitted again; success is final and a new checkout
    needs a new orchestrator. Only one submission is in flight at a time.
    """

    def __init__(self, cart: CartStore, orders_api: OrdersApi):
        self.cart = cart
        self.orders_api = orders_api
        self.state = CheckoutState.IDLE
        self.errors: Dict[str, str] = {}
        self.error_message: Optional[str] = None
        self.order_id: Optional[str] = None

    @property
    def requires_redirect(self) -> bool:
        """An empty cart cannot be checked out; send the shopper back to the cart"""
        return self.cart.is_empty and self.state != CheckoutState.SUCCESS

    @property
    def is_submitting(self) -> bool:
        return self.state == CheckoutState.SUBMITTING

    def validate(self, form: Union[CustomerInfo, Mapping[str, Any]]) -> Optional[CustomerInfo]:
        """Validate delivery details; field errors are kept in self.errors"""
        if isinstance(form, CustomerInfo):
            form = form.model_dump(by_alias=True)

        try:
            customer = CustomerInfo.model_validate(dict(form))
        except PydanticValidationError as e:
            self.errors = {
                str(error["loc"][0]) if error["loc"] else "__all__": error["msg"]
                for error in e.errors()
            }
            return None

        self.errors = {}
        return customer

    def build_payload(self, customer: CustomerInfo) -> Dict[str, Any]:
        """Order submission built from the current cart"""
        totals = self.cart.totals()
        return {
            "customer": customer.model_dump(by_alias=True),
            "items": [
                {
                    "productId": line.product.id,
                    "name": line.product.name,
                    "price": float(line.product.price),
                    "quantity": line.quantity,
                }
                for line in self.cart.lines
            ],
            "total": float(totals.total_price),
            "status": OrderStatus.PENDING.value,
        }

    async def submit(self, form: Union[CustomerInfo, Mapping[str, Any]]) -> CheckoutState:
        """
        Validate and submit the order.

        Returns:
            The state after this attempt

        Raises:
            CheckoutStateError: If the checkout already succeeded
            EmptyCartError: If the cart is empty
        """
        if self.state == CheckoutState.SUBMITTING:
            logger.warning("Ignoring submit while an order submission is in flight")
            return self.state

        if self.state == CheckoutState.SUCCESS:
            raise CheckoutStateError("Checkout already completed; start a new checkout")

        if self.cart.is_empty:
            raise EmptyCartError()

        self.state = CheckoutState.VALIDATING
        self.error_message = None
        customer = self.validate(form)
        if customer is None:
            self.state = CheckoutState.IDLE
            return self.state

        payload = self.build_payload(customer)
        self.state = CheckoutState.SUBMITTING

        try:
            data = await self.orders_api.create_order(payload)
        except OrderApiError as e:
            logger.error(f"Failed to place order: {e.message}")
            self.error_message = e.message
            self.state = CheckoutState.FAILED
            return self.state
        except Exception as e:
            logger.error(f"Failed to place order: {type(e).__name__}: {e}", exc_info=True)
            self.error_message = "Could not place the order, please try again"
            self.state = CheckoutState.FAILED
            return self.state
        except BaseException:
            # Cancelled while in flight; leave the checkout retryable
            self.error_message = "Order submission was interrupted"
            self.state = CheckoutState.FAILED
            raise

        order_id = data.get("orderId") if isinstance(data, dict) else None
        if not order_id:
            logger.error("Order service response did not include an order id")
            self.error_message = "Order service did not return an order id"
            self.state = CheckoutState.FAILED
            return self.state

        self.order_id = order_id
        self.cart.clear()
        self.state = CheckoutState.SUCCESS
        logger.info(f"Order placed: {order_id}")
        return self.state
