"""Registros de catálogo, carrinho e pedidos trocados com o colaborador comercial."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from zapdesk.domain.models import utcnow

UNLIMITED_STOCK = -1


class Category(BaseModel):
    category_id: int
    name: str
    description: str = ""
    emoji: str = ""
    sort_order: int = 0
    active: bool = True


class Product(BaseModel):
    product_id: int
    category_id: int
    name: str
    description: str = ""
    price: float
    currency: str = "USD"
    stock: int = UNLIMITED_STOCK
    sku: str | None = None
    sort_order: int = 0
    active: bool = True

    @property
    def in_stock(self) -> bool:
        return self.stock == UNLIMITED_STOCK or self.stock > 0


class CartLine(BaseModel):
    product_id: int
    name: str
    unit_price: float
    quantity: int = 1

    @property
    def subtotal(self) -> float:
        return self.unit_price * self.quantity


class OrderLine(BaseModel):
    product_id: int
    name: str
    quantity: int
    unit_price: float


class Order(BaseModel):
    order_id: int
    customer_id: str
    status: str = "confirmed"
    total: float
    currency: str = "USD"
    note: str | None = None
    lines: list[OrderLine] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
