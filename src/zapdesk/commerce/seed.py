"""Carga inicial do catálogo (arquivo JSON ou catálogo de demonstração)."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel, Field

from zapdesk.commerce.service import InMemoryCommerceService
from zapdesk.domain.catalog import Category, Product
from zapdesk.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)


class CatalogSeed(BaseModel):
    """Formato do arquivo de seed (CATALOG_SEED_PATH)."""

    categories: list[Category] = Field(default_factory=list)
    products: list[Product] = Field(default_factory=list)


def demo_catalog(currency: str = "USD") -> CatalogSeed:
    categories = [
        Category(category_id=cid, name=name, description=description, emoji=emoji, sort_order=cid)
        for cid, name, description, emoji in (
            (1, "Electronics", "Gadgets and devices", "📱"),
            (2, "Clothing", "Fashion and apparel", "👕"),
            (3, "Food & Beverages", "Snacks and drinks", "🍔"),
            (4, "Services", "Professional services", "🛠️"),
        )
    ]
    rows = [
        (1, 1, "Wireless Earbuds Pro", "Premium sound quality, 24hr battery", 49.99, 50, "ELEC-001"),
        (2, 1, "Phone Case (Universal)", "Shockproof, fits most smartphones", 9.99, 200, "ELEC-002"),
        (3, 1, "USB-C Fast Charger", "65W GaN charger with cable", 24.99, 100, "ELEC-003"),
        (4, 2, "Classic T-Shirt", "100% cotton, available in S/M/L/XL", 15.99, -1, "CLO-001"),
        (5, 2, "Denim Jeans", "Slim fit, 5 colors available", 39.99, 75, "CLO-002"),
        (6, 3, "Energy Drink Pack (6x)", "Natural energy boost, zero sugar", 12.99, 500, "FNB-001"),
        (7, 3, "Premium Coffee Blend", "500g arabica coffee, medium roast", 18.99, 150, "FNB-002"),
        (8, 4, "Tech Support (1hr)", "Remote tech support session", 35.00, -1, "SVC-001"),
        (9, 4, "Logo Design", "Professional logo with 3 revisions", 99.00, -1, "SVC-002"),
    ]
    products = [
        Product(
            product_id=pid,
            category_id=cid,
            name=name,
            description=description,
            price=price,
            currency=currency,
            stock=stock,
            sku=sku,
            sort_order=pid,
        )
        for pid, cid, name, description, price, stock, sku in rows
    ]
    return CatalogSeed(categories=categories, products=products)


def load_seed(path: str | None, currency: str = "USD") -> CatalogSeed:
    """Lê o seed do arquivo; sem caminho, usa o catálogo de demonstração."""
    if not path:
        return demo_catalog(currency)
    seed = CatalogSeed.model_validate_json(Path(path).read_text(encoding="utf-8"))
    logger.info(
        "catalog_seed_loaded",
        extra={"categories": len(seed.categories), "products": len(seed.products)},
    )
    return seed


def create_commerce_service(
    path: str | None = None, currency: str = "USD"
) -> InMemoryCommerceService:
    seed = load_seed(path, currency)
    return InMemoryCommerceService(
        categories=seed.categories, products=seed.products, currency=currency
    )
