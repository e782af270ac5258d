"""
Cart store holding the shopper's in-progress selection.
"""
import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Callable, Dict, List, Optional, Protocol

from pydantic import ValidationError as PydanticValidationError

from farmstore.config import Config
from farmstore.exceptions import ValidationError
from farmstore.models import CartLine, CartTotals, Product

logger = logging.getLogger(__name__)

CartListener = Callable[["CartStore"], None]


class CartStorage(Protocol):
    """Somewhere to keep cart lines between sessions"""

    def load(self) -> List[dict]:
        ...

    def save(self, lines: List[dict]) -> None:
        ...


class JsonFileCartStorage:
    """Keeps cart lines in a JSON file"""

    def __init__(self, path):
        self.path = Path(path)

    def load(self) -> List[dict]:
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring unreadable cart file {self.path}: {e}")
            return []
        return data if isinstance(data, list) else []

    def save(self, lines: List[dict]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(lines), encoding="utf-8")


class CartStore:
    """
    In-memory cart with derived totals.

    Lines are keyed by product id, so adding a product that is already in the
    cart increases its quantity instead of creating a second line. Listeners
    registered with subscribe() are called after every change.
    """

    def __init__(self, storage: Optional[CartStorage] = None):
        self.storage = storage
        self._lines: Dict[str, CartLine] = {}
        self._listeners: List[CartListener] = []
        if storage is not None:
            self._restore()

    def _restore(self):
        for raw in self.storage.load():
            try:
                line = CartLine.model_validate(raw)
            except PydanticValidationError as e:
                # Skip invalid lines
                logger.warning(f"Failed to restore cart line: {e}")
                continue
            self._lines[line.product.id] = line

    def _changed(self):
        if self.storage is not None:
            self.storage.save([line.model_dump(mode="json") for line in self._lines.values()])
        for listener in list(self._listeners):
            listener(self)

    @property
    def lines(self) -> List[CartLine]:
        """Cart lines in insertion order"""
        return list(self._lines.values())

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def get_line(self, product_id: str) -> Optional[CartLine]:
        return self._lines.get(product_id)

    def subscribe(self, listener: CartListener) -> Callable[[], None]:
        """Register a change listener; returns a function that removes it"""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def add_item(self, product: Product, quantity: int = 1) -> CartLine:
        """Add a product, merging with an existing line for the same product"""
        if quantity <= 0:
            raise ValidationError("Quantity must be greater than 0")

        existing = self._lines.get(product.id)
        if existing is not None:
            line = existing.model_copy(update={"quantity": existing.quantity + quantity})
        else:
            line = CartLine(product=product, quantity=quantity)

        self._lines[product.id] = line
        self._changed()
        return line

    def remove_item(self, product_id: str) -> bool:
        """Remove a product's line; returns False if it was not in the cart"""
        if self._lines.pop(product_id, None) is None:
            return False
        self._changed()
        return True

    def update_quantity(self, product_id: str, quantity: int) -> Optional[CartLine]:
        """
        Set a line's quantity, never below 1.

        Use remove_item() to take a product out of the cart.
        """
        existing = self._lines.get(product_id)
        if existing is None:
            return None

        line = existing.model_copy(update={"quantity": max(1, quantity)})
        self._lines[product_id] = line
        self._changed()
        return line

    def clear(self):
        """Empty the cart"""
        self._lines.clear()
        self._changed()

    def totals(self) -> CartTotals:
        total_items = 0
        total_price = Decimal("0")
        for line in self._lines.values():
            total_items += line.quantity
            total_price += line.subtotal
        return CartTotals(total_items=total_items, total_price=total_price)


def default_cart_storage() -> Optional[CartStorage]:
    """File storage at CART_STORAGE_PATH, or None to keep the cart in memory only"""
    if not Config.CART_STORAGE_PATH:
        return None
    return JsonFileCartStorage(Config.CART_STORAGE_PATH)
