"""Contrato do colaborador de catálogo, carrinho e pedidos."""

from __future__ import annotations

from typing import Protocol

from zapdesk.domain.catalog import CartLine, Category, Order, Product
from zapdesk.domain.enums import AddToCartResult


class CommerceService(Protocol):
    currency: str

    def list_categories(self) -> list[Category]: ...

    def get_category(self, category_id: int) -> Category | None: ...

    def list_products(self, category_id: int) -> list[Product]: ...

    def get_product(self, product_id: int) -> Product | None: ...

    def search(self, query: str, limit: int = 10) -> list[Product]: ...

    def get_cart(self, customer_id: str) -> list[CartLine]: ...

    def add_to_cart(
        self, customer_id: str, product_id: int, quantity: int = 1
    ) -> AddToCartResult: ...

    def clear_cart(self, customer_id: str) -> None: ...

    def place_order(self, customer_id: str, note: str | None = None) -> Order | None: ...

    def get_order(self, order_id: int) -> Order | None: ...

    def list_orders(self, customer_id: str) -> list[Order]: ...
