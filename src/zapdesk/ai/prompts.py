"""Prompts do assistente de atendimento."""

from __future__ import annotations

from zapdesk.config.settings import Settings
from zapdesk.domain.catalog import UNLIMITED_STOCK
from zapdesk.domain.protocols.catalog import CommerceService

HANDOFF_TAG = "[HANDOFF_REQUESTED]"


def _catalog_section(commerce: CommerceService) -> str:
    lines: list[str] = []
    for category in commerce.list_categories():
        products = commerce.list_products(category.category_id)
        if not products:
            continue
        lines.append(f"{category.emoji} **{category.name}** ({category.description}):")
        for product in products:
            if product.stock == UNLIMITED_STOCK:
                stock = "In stock"
            elif product.stock > 0:
                stock = f"{product.stock} in stock"
            else:
                stock = "Out of stock"
            lines.append(
                f"  • {product.name} — {product.currency} {product.price:.2f} | {stock}"
            )
    if not lines:
        return "No products listed yet. Direct customers to contact us for product inquiries."
    return "\n".join(lines)


def _language_instruction(language: str) -> str:
    if language == "auto":
        return (
            "LANGUAGE: Detect the language of the customer's message and always respond "
            "in that same language. If unsure, default to English."
        )
    return (
        f'LANGUAGE: The customer\'s preferred language is "{language}". '
        "Respond in that language unless they switch."
    )


def build_system_prompt(
    settings: Settings,
    commerce: CommerceService,
    language: str = "auto",
    extra_context: str | None = None,
) -> str:
    """Monta o prompt de sistema com dados do negócio e catálogo."""
    prompt = f"""You are a customer service assistant for "{settings.business_name}".

## Business Information
- Name: {settings.business_name}
- About: {settings.business_description}
- Business Hours: {settings.business_hours}

## Product Catalog
{_catalog_section(commerce)}

## Behavior Rules
- Be friendly, warm and professional.
- Keep responses concise and formatted for WhatsApp (*bold*, _italic_).
- Never make up information; if you don't know, say so.

## {_language_instruction(language)}

## Escalation Rules
Include the exact tag {HANDOFF_TAG} in your response when the customer asks for a
human, is clearly frustrated, or has an issue you cannot resolve. Also write a short
message explaining you're connecting them to a person.

## Menu Navigation
Remind lost customers they can type *MENU*, *CATALOG*, *ORDERS* or *AGENT*."""
    if extra_context:
        prompt += f"\n\n## Current Session Context\n{extra_context}"
    return prompt
