"""
Pydantic models for cart state, orders, requests, and responses.
"""
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

ETHIOPIAN_REGIONS = (
    "Addis Ababa",
    "Afar",
    "Amhara",
    "Benishangul-Gumuz",
    "Dire Dawa",
    "Gambela",
    "Harari",
    "Oromia",
    "Sidama",
    "Somali",
    "South Ethiopia",
    "South West Ethiopia",
    "Tigray",
)


class OrderStatus(str, Enum):
    """Fulfillment stage of an order"""
    PENDING = "pending"
    PROCESSING = "processing"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class Product(BaseModel):
    """Catalog product as seen by the cart"""
    id: str = Field(..., description="Product identifier")
    name: str = Field(..., description="Product name")
    price: Decimal = Field(..., ge=0, description="Unit price")
    category: Optional[str] = Field(None, description="Catalog category")
    image: Optional[str] = Field(None, description="Image reference")


class CartLine(BaseModel):
    """One product entry in the cart"""
    product: Product
    quantity: int = Field(..., ge=1, description="Item quantity")

    @property
    def subtotal(self) -> Decimal:
        return self.product.price * self.quantity


class CartTotals(BaseModel):
    """Totals derived from the cart lines"""
    total_items: int = Field(0, description="Total number of items")
    total_price: Decimal = Field(Decimal("0"), description="Total cart price")


class CustomerInfo(BaseModel):
    """Delivery details entered at checkout"""
    model_config = ConfigDict(populate_by_name=True)

    full_name: str = Field(..., alias="fullName", description="Customer full name")
    phone: str = Field(..., description="Contact phone number")
    address: str = Field(..., description="Street address")
    region: str = Field(..., description="Delivery region")
    notes: Optional[str] = Field(None, description="Delivery notes")

    @field_validator("full_name", "phone", "address")
    @classmethod
    def validate_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("This field is required")
        return v

    @field_validator("region")
    @classmethod
    def validate_region(cls, v: str) -> str:
        v = v.strip()
        if v not in ETHIOPIAN_REGIONS:
            raise ValueError(f"Unknown region: {v!r}")
        return v


class OrderItem(BaseModel):
    """Snapshot of a product at order time"""
    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(..., alias="productId", min_length=1, description="Product identifier")
    name: str = Field(..., min_length=1, description="Product name at order time")
    price: float = Field(..., ge=0, allow_inf_nan=False, description="Unit price at order time")
    quantity: int = Field(..., ge=1, description="Ordered quantity")


class OrderCreateRequest(BaseModel):
    """Request model for placing an order"""
    customer: CustomerInfo
    items: List[OrderItem] = Field(..., min_length=1, description="Ordered items")
    total: float = Field(..., ge=0, allow_inf_nan=False, description="Order total")


class StatusUpdateRequest(BaseModel):
    """Request model for changing an order status"""
    status: str = Field(..., description="New order status")


class Order(BaseModel):
    """Persisted order"""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="_id", description="Internal record identifier")
    order_id: str = Field(..., alias="orderId", description="Human-readable order reference")
    customer: CustomerInfo
    items: List[OrderItem]
    total: float
    status: OrderStatus = OrderStatus.PENDING
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")

    def to_document(self) -> dict:
        """Serialize with the wire field names"""
        return self.model_dump(by_alias=True, mode="json")


class OrderCreatedResponse(BaseModel):
    """Data returned after an order is placed"""
    model_config = ConfigDict(populate_by_name=True)

    order_id: str = Field(..., alias="orderId")
    id: str = Field(..., alias="_id")
