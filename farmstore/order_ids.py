"""
Human-readable order identifiers.
"""
import random
from typing import Optional

from farmstore.config import Config

ORDER_NUMBER_MIN = 1000
ORDER_NUMBER_MAX = 9999


class OrderIdGenerator:
    """Generates references of the form PREFIX-NNNN"""

    def __init__(self, prefix: Optional[str] = None, rng: Optional[random.Random] = None):
        self.prefix = prefix or Config.ORDER_ID_PREFIX
        self.rng = rng or random.Random()

    def generate(self) -> str:
        # Uniqueness is not checked here; the order store claims the id on insert
        number = self.rng.randint(ORDER_NUMBER_MIN, ORDER_NUMBER_MAX)
        return f"{self.prefix}-{number}"
