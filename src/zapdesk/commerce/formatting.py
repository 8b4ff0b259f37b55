"""Formatação de registros comerciais em texto para WhatsApp."""

from __future__ import annotations

from zapdesk.domain.catalog import UNLIMITED_STOCK, CartLine, Category, Order, Product

SEPARATOR = "━━━━━━━━━━━━━━━"
MAX_LISTED_ORDERS = 5

_STATUS_EMOJI = {
    "pending": "⏳",
    "confirmed": "✅",
    "processing": "🔄",
    "shipped": "🚚",
    "delivered": "📦",
    "cancelled": "❌",
}


def money(amount: float, currency: str) -> str:
    return f"{currency} {amount:.2f}"


def format_product(product: Product, index: int | None = None) -> str:
    prefix = f"*{index}.* " if index is not None else ""
    if product.stock == UNLIMITED_STOCK:
        stock = "✅ Available"
    elif product.stock > 0:
        stock = f"✅ {product.stock} left"
    else:
        stock = "❌ Out of stock"
    text = f"{prefix}*{product.name}*\n💰 {money(product.price, product.currency)}  |  {stock}\n"
    if product.description:
        text += f"📝 {product.description}\n"
    return text


def format_catalog_menu(categories: list[Category]) -> str:
    if not categories:
        return (
            "📭 Our catalog is being updated. Please check back soon "
            "or type *AGENT* to talk to us directly."
        )
    lines = ["🛍️ *Our Product Catalog*", "", "Choose a category:", ""]
    for i, category in enumerate(categories, start=1):
        label = f"{category.emoji} {category.name}".strip()
        lines.append(f"*{i}.* {label}")
    lines += [
        "",
        "_Reply with a number to browse that category_",
        "_Or type a product name to search_",
    ]
    return "\n".join(lines)


def format_category_listing(category: Category, products: list[Product]) -> str:
    if not products:
        return f"No products in {category.name} yet. Check back soon!"
    text = f"{category.emoji} *{category.name}*\n\n"
    for i, product in enumerate(products, start=1):
        text += format_product(product, i) + "\n"
    text += "\n_Reply with a product number to add to cart_\n_Type *BACK* to return to categories_"
    return text


def format_search_results(query: str, products: list[Product]) -> str:
    text = f"🔎 Results for *{query}*:\n\n"
    for i, product in enumerate(products, start=1):
        text += format_product(product, i) + "\n"
    text += "\n_Reply with a product number to add to cart_\n_Type *BACK* to return to categories_"
    return text


def format_cart(lines: list[CartLine], currency: str) -> str:
    if not lines:
        return "🛒 Your cart is empty.\n\nType *CATALOG* to browse products."
    text = "🛒 *Your Cart*\n\n"
    total = 0.0
    for i, line in enumerate(lines, start=1):
        text += f"*{i}.* {line.name}\n"
        text += (
            f"   {line.quantity}x {money(line.unit_price, currency)} = "
            f"*{money(line.subtotal, currency)}*\n\n"
        )
        total += line.subtotal
    text += f"{SEPARATOR}\n💳 *Total: {money(total, currency)}*\n\n"
    text += "Reply:\n*CHECKOUT* — Place order\n*CLEAR* — Empty cart\n*CATALOG* — Keep shopping"
    return text


def format_order(order: Order) -> str:
    emoji = _STATUS_EMOJI.get(order.status, "📦")
    text = f"📋 *Order #{order.order_id}*\n"
    text += f"📅 {order.created_at.date().isoformat()}\n"
    text += f"{emoji} Status: *{order.status.upper()}*\n\n"
    for line in order.lines:
        text += (
            f"• {line.name} x{line.quantity} — "
            f"{money(line.unit_price * line.quantity, order.currency)}\n"
        )
    text += f"{SEPARATOR}\n💳 *Total: {money(order.total, order.currency)}*"
    if order.note:
        text += f"\n📝 {order.note}"
    return text


def format_order_confirmation(order: Order) -> str:
    text = f"🎉 *Order Confirmed!*\n\nOrder #{order.order_id}\n\n"
    for line in order.lines:
        text += f"• {line.name} x{line.quantity}\n"
    text += f"\n💳 *Total: {money(order.total, order.currency)}*\n\n"
    text += "We'll contact you shortly to arrange delivery/collection.\n"
    text += "Thank you for your order! 🙏\n\n"
    text += "_Type *ORDERS* anytime to check your order status._"
    return text


def format_customer_orders(orders: list[Order]) -> str:
    """Últimos pedidos do cliente (mais recentes primeiro)."""
    if not orders:
        return "📭 You haven't placed any orders yet.\n\nType *CATALOG* to browse our products!"
    text = "📋 *Your Orders*\n\n"
    for order in orders[:MAX_LISTED_ORDERS]:
        text += f"*Order #{order.order_id}* — {order.created_at.date().isoformat()}\n"
        text += (
            f"Status: {order.status.upper()} | Total: {money(order.total, order.currency)}\n"
        )
        text += f"Items: {', '.join(line.name for line in order.lines)}\n\n"
    if len(orders) > MAX_LISTED_ORDERS:
        text += f"_Showing {MAX_LISTED_ORDERS} most recent orders out of {len(orders)}_\n"
    text += "\nType *ORDER {number}* to see order details."
    return text
