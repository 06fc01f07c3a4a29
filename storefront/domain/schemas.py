# storefront/domain/schemas.py
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        str_strip_whitespace=True,
    )


def _stringify_id(value):
    # clients send numeric catalog ids, the store keeps strings
    if isinstance(value, bool):
        raise ValueError("Product ID must be a string or an integer")
    if isinstance(value, int):
        return str(value)
    return value


# =====================================================
# requests
# =====================================================
class ProductIn(ApiModel):
    """Product snapshot sent with add-to-cart."""

    id: str = Field(..., min_length=1, max_length=50, description="Catalog product id")
    name: str = Field(..., min_length=1, max_length=100)
    price: Decimal = Field(..., ge=0, le=10000)
    image: str = Field(..., min_length=1, max_length=500)
    in_stock: bool = True

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, value):
        return _stringify_id(value)


class AddItemIn(ApiModel):
    product: ProductIn
    size: str = Field(..., min_length=1, max_length=20)
    quantity: int = Field(1, ge=1, le=10)


class UpdateItemIn(ApiModel):
    product_id: str = Field(..., min_length=1, max_length=50)
    size: str = Field(..., min_length=1, max_length=20)
    quantity: int = Field(..., description="Clamped to [1, 10]")

    @field_validator("product_id", mode="before")
    @classmethod
    def stringify_product_id(cls, value):
        return _stringify_id(value)


class RemoveItemIn(ApiModel):
    product_id: str = Field(..., min_length=1, max_length=50)
    size: str = Field(..., min_length=1, max_length=20)

    @field_validator("product_id", mode="before")
    @classmethod
    def stringify_product_id(cls, value):
        return _stringify_id(value)


class CreateCheckoutIn(ApiModel):
    session_id: str = Field(..., min_length=1, max_length=100)
    success_url: Optional[str] = None
    cancel_url: Optional[str] = None
    email: Optional[str] = None


# =====================================================
# responses
# =====================================================
class CartItemOut(ApiModel):
    product_id: str
    name: str
    price: Decimal
    image: str
    size: str
    quantity: int
    in_stock: bool = True


class CartOut(ApiModel):
    session_id: str
    items: List[CartItemOut]
    total: Decimal
    item_count: int
    last_updated: Optional[datetime] = None


class CartResponse(ApiModel):
    success: bool = True
    message: Optional[str] = None
    applied: Optional[bool] = None
    data: CartOut


class CheckoutSessionOut(ApiModel):
    success: bool = True
    session_id: str
    url: Optional[str] = None


class ProviderSessionOut(ApiModel):
    id: str
    payment_status: Optional[str] = None
    customer_email: Optional[str] = None
    amount_total: Optional[Decimal] = None
    currency: Optional[str] = None


class OrderSummaryOut(ApiModel):
    id: int
    order_status: str
    payment_status: str
    total: Decimal


class SessionStatusOut(ApiModel):
    success: bool = True
    session: ProviderSessionOut
    order: Optional[OrderSummaryOut] = None
