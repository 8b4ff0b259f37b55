"""Textos enviados pelo bot aos clientes e atendentes."""

from __future__ import annotations


def welcome_prompt(business_name: str) -> str:
    return (
        f"👋 Welcome to *{business_name}*!\n\n"
        "I'm your virtual assistant. Before we start, what's your name?"
    )


NAME_TOO_SHORT = "Please tell me your name (at least 2 characters) so I can help you better. 😊"


def welcome_offer(name: str) -> str:
    return (
        f"Nice to meet you, *{name}*! 🎉\n\n"
        "As a welcome gift, enjoy *10% off* your first order."
    )


def main_menu(business_name: str) -> str:
    return (
        f"🏠 *{business_name}*: Main Menu\n\n"
        "*1.* 🛍️ Browse catalog\n"
        "*2.* 📋 My orders\n"
        "*3.* 💬 Ask a question\n"
        "*4.* 👤 Talk to a human\n\n"
        "_Reply with a number, or just type your question._\n"
        "_Shortcuts: *CART*, *CHECKOUT*, *ORDERS*, *AGENT*_"
    )


AI_CHAT_INTRO = (
    "💬 Sure! Ask me anything about our products, prices or your orders.\n\n"
    "_Type *MENU* anytime to go back._"
)
AI_APOLOGY = (
    "😕 Sorry, I couldn't process that right now. "
    "Type *MENU* for options or *AGENT* to talk to a human."
)

INVALID_PRODUCT_NUMBER = "❌ That number isn't on the list. Pick a product number, or type *BACK*."
PRODUCT_NOT_FOUND = "❌ Sorry, that product is no longer available."


def added_to_cart(product_name: str, updated: bool) -> str:
    verb = "Added another" if updated else "Added"
    return (
        f"✅ {verb} *{product_name}* to your cart!\n\n"
        "Type *CART* to view it, *CHECKOUT* to order, or pick another number."
    )


def out_of_stock(product_name: str) -> str:
    return f"❌ Sorry, *{product_name}* is out of stock right now."


def no_products_found(query: str) -> str:
    return f'🔎 No products found for "{query}".'


CHECKOUT_INSTRUCTIONS = (
    "Type *CONFIRM* to place your order, *CANCEL* to go back, "
    "or send a note (delivery address, preferences) to attach to the order."
)
ORDER_FAILED = (
    "⚠️ Something went wrong placing your order. Your cart may be empty.\n\n"
    "Type *CATALOG* to browse products."
)
CHECKOUT_CANCELLED = "Checkout cancelled. Your cart is saved, type *CART* to review it."


def note_added(note: str) -> str:
    return (
        f"📝 Note added to your order: _{note}_\n\n"
        "Type *CONFIRM* to place it or *CANCEL* to go back."
    )


CART_EMPTY_AT_CHECKOUT = "🛒 Your cart is empty. Type *CATALOG* to browse products."
CART_CLEARED = "🗑️ Your cart has been cleared."
OPTED_OUT = (
    "✅ You've been unsubscribed from promotional messages. "
    "Type *SUBSCRIBE* anytime to re-subscribe."
)
OPTED_IN = "✅ You're subscribed to updates and offers again!"


def order_not_found(order_id: int) -> str:
    return f"❌ Order #{order_id} not found."


# -- handoff ---------------------------------------------------------------

CUSTOMER_REQUESTED_AGENT = "Customer requested human agent"
MENU_REQUESTED_AGENT = "Requested from menu"


def ai_escalation_reason(text: str) -> str:
    return f'AI escalation after: "{text[:120]}"'


def connecting_to_agent(agent_name: str) -> str:
    return (
        f"👤 Connecting you with *{agent_name}*...\n\n"
        "They'll be with you shortly. Type *MENU* anytime to disconnect and return to the bot."
    )


def new_chat_for_agent(customer_label: str, customer_address: str, reason: str) -> str:
    return (
        "🔔 *New customer chat*\n\n"
        f"Customer: {customer_label}\n"
        f"Phone: {customer_address}\n"
        f"Reason: {reason}\n\n"
        "Reply here to chat with them. Type *END* when done."
    )


def chat_ended_for_customer(agent_name: str, business_name: str) -> str:
    return (
        f"✅ Your chat with *{agent_name}* has ended. "
        f"Thank you for contacting {business_name}!\n\n"
        "Type *MENU* to see options."
    )


def chat_ended_for_agent(customer_label: str) -> str:
    return f"✅ Chat with {customer_label} ended. You are now available."


def customer_left_for_agent(customer_label: str) -> str:
    return f"ℹ️ {customer_label} left the chat (typed MENU). You are now available."


def agent_status_busy(customer_label: str, customer_address: str) -> str:
    return (
        f"📊 You are chatting with *{customer_label}* ({customer_address}).\n"
        "Type *END* to finish."
    )


def forwarded_to_agent(customer_label: str, text: str) -> str:
    return f"[{customer_label}]: {text}"


AGENT_STATUS_IDLE = "📊 You are available. No active customer chat."
AGENT_NO_SESSION = "No active customer session found."
AGENT_USAGE_HINT = (
    "ℹ️ You have no active customer chat.\n"
    "Commands: *STATUS* shows your current chat, *END* finishes it."
)
AGENT_END_FAILED = "⚠️ Could not end the chat right now. Please try again."
SESSION_RELEASE_FAILED = "⚠️ Could not disconnect you right now. Please try again."
