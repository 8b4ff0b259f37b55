"""Catálogo, carrinho e pedidos em memória do processo."""

from __future__ import annotations

import itertools
import logging
import threading

from zapdesk.domain.catalog import (
    UNLIMITED_STOCK,
    CartLine,
    Category,
    Order,
    OrderLine,
    Product,
)
from zapdesk.domain.enums import AddToCartResult
from zapdesk.observability.logging import get_logger, mask

logger: logging.Logger = get_logger(__name__)

DEFAULT_SEARCH_LIMIT = 10


class InMemoryCommerceService:
    """Colaborador comercial simples para dev/testes e lojas pequenas.

    ⚠️ Carrinhos e pedidos se perdem em restart.
    """

    def __init__(
        self,
        categories: list[Category] | None = None,
        products: list[Product] | None = None,
        currency: str = "USD",
    ) -> None:
        self.currency = currency
        self._categories: dict[int, Category] = {c.category_id: c for c in categories or []}
        self._products: dict[int, Product] = {p.product_id: p for p in products or []}
        self._carts: dict[str, dict[int, int]] = {}
        self._orders: dict[int, Order] = {}
        self._order_ids = itertools.count(1)
        self._lock = threading.RLock()

    # -- catálogo --------------------------------------------------------

    def list_categories(self) -> list[Category]:
        with self._lock:
            items = [c for c in self._categories.values() if c.active]
        return sorted(items, key=lambda c: (c.sort_order, c.name))

    def get_category(self, category_id: int) -> Category | None:
        with self._lock:
            return self._categories.get(category_id)

    def list_products(self, category_id: int) -> list[Product]:
        with self._lock:
            items = [
                p for p in self._products.values() if p.active and p.category_id == category_id
            ]
        return sorted(items, key=lambda p: (p.sort_order, p.name))

    def get_product(self, product_id: int) -> Product | None:
        with self._lock:
            product = self._products.get(product_id)
        return product if product and product.active else None

    def search(self, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> list[Product]:
        """Busca por substring em nome, descrição e SKU."""
        needle = query.strip().lower()
        if not needle:
            return []
        with self._lock:
            matches = [
                p
                for p in self._products.values()
                if p.active
                and (
                    needle in p.name.lower()
                    or needle in p.description.lower()
                    or needle in (p.sku or "").lower()
                )
            ]
        matches.sort(key=lambda p: p.name)
        return matches[:limit]

    # -- carrinho --------------------------------------------------------

    def get_cart(self, customer_id: str) -> list[CartLine]:
        with self._lock:
            cart = dict(self._carts.get(customer_id, {}))
            lines: list[CartLine] = []
            for product_id, quantity in cart.items():
                product = self._products.get(product_id)
                if product is None:
                    continue
                lines.append(
                    CartLine(
                        product_id=product_id,
                        name=product.name,
                        unit_price=product.price,
                        quantity=quantity,
                    )
                )
        return lines

    def add_to_cart(
        self, customer_id: str, product_id: int, quantity: int = 1
    ) -> AddToCartResult:
        with self._lock:
            product = self.get_product(product_id)
            if product is None:
                return AddToCartResult.NOT_FOUND
            if not product.in_stock:
                return AddToCartResult.OUT_OF_STOCK

            cart = self._carts.setdefault(customer_id, {})
            if product_id in cart:
                cart[product_id] += quantity
                return AddToCartResult.UPDATED
            cart[product_id] = quantity
            return AddToCartResult.ADDED

    def clear_cart(self, customer_id: str) -> None:
        with self._lock:
            self._carts.pop(customer_id, None)

    # -- pedidos ---------------------------------------------------------

    def place_order(self, customer_id: str, note: str | None = None) -> Order | None:
        """Converte o carrinho em pedido confirmado; None se o carrinho estiver vazio."""
        with self._lock:
            lines = self.get_cart(customer_id)
            if not lines:
                return None

            order = Order(
                order_id=next(self._order_ids),
                customer_id=customer_id,
                status="confirmed",
                total=round(sum(line.subtotal for line in lines), 2),
                currency=self.currency,
                note=note,
                lines=[
                    OrderLine(
                        product_id=line.product_id,
                        name=line.name,
                        quantity=line.quantity,
                        unit_price=line.unit_price,
                    )
                    for line in lines
                ],
            )
            for line in lines:
                product = self._products[line.product_id]
                if product.stock != UNLIMITED_STOCK:
                    product.stock = max(0, product.stock - line.quantity)

            self._orders[order.order_id] = order
            self._carts.pop(customer_id, None)

        logger.info(
            "order_placed",
            extra={"order_id": order.order_id, "customer_id": mask(customer_id)},
        )
        return order

    def get_order(self, order_id: int) -> Order | None:
        with self._lock:
            return self._orders.get(order_id)

    def list_orders(self, customer_id: str) -> list[Order]:
        """Pedidos do cliente, mais recentes primeiro."""
        with self._lock:
            orders = [o for o in self._orders.values() if o.customer_id == customer_id]
        return sorted(orders, key=lambda o: o.order_id, reverse=True)
