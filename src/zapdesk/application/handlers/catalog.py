"""BROWSING_CATALOG e BROWSING_CATEGORY: navegação, busca e carrinho."""

from __future__ import annotations

from zapdesk.application import replies
from zapdesk.application.commands import BACK_WORDS, MORE_WORDS, normalize, parse_index
from zapdesk.application.handlers.ai_chat import handle_ai_chat
from zapdesk.application.handlers.base import ADD_TO_CART_BONUS, HandlerDeps, Transition, Turn
from zapdesk.commerce.formatting import (
    format_catalog_menu,
    format_category_listing,
    format_search_results,
)
from zapdesk.domain.context import CategoryContext, EmptyContext
from zapdesk.domain.enums import AddToCartResult, ConversationState


def _catalog_menu(deps: HandlerDeps) -> str:
    return format_catalog_menu(deps.commerce.list_categories())


async def handle_browsing_catalog(turn: Turn, deps: HandlerDeps) -> Transition:
    if normalize(turn.text) in BACK_WORDS:
        return Transition(
            next_state=ConversationState.MENU,
            context=EmptyContext(),
            replies=[replies.main_menu(deps.settings.business_name)],
        )

    categories = deps.commerce.list_categories()
    index = parse_index(turn.text)
    if index is not None and 1 <= index <= len(categories):
        category = categories[index - 1]
        products = deps.commerce.list_products(category.category_id)
        return Transition(
            next_state=ConversationState.BROWSING_CATEGORY,
            context=CategoryContext(category_id=category.category_id),
            replies=[format_category_listing(category, products)],
        )

    query = turn.text.strip()
    results = deps.commerce.search(query)
    if not results:
        return Transition(
            replies=[f"{replies.no_products_found(query)}\n\n{_catalog_menu(deps)}"]
        )
    return Transition(
        next_state=ConversationState.BROWSING_CATEGORY,
        context=CategoryContext(
            search_result_ids=[p.product_id for p in results],
            search_query=query,
        ),
        replies=[format_search_results(query, results)],
    )


def _active_product_ids(deps: HandlerDeps, context: CategoryContext) -> list[int]:
    """Resultados de busca têm precedência sobre a listagem da categoria."""
    if context.search_result_ids:
        return list(context.search_result_ids)
    if context.category_id is None:
        return []
    return [p.product_id for p in deps.commerce.list_products(context.category_id)]


def _relist(deps: HandlerDeps, context: CategoryContext) -> str:
    if context.search_result_ids:
        products = [
            product
            for product_id in context.search_result_ids
            if (product := deps.commerce.get_product(product_id)) is not None
        ]
        return format_search_results(context.search_query or "", products)
    category = (
        deps.commerce.get_category(context.category_id)
        if context.category_id is not None
        else None
    )
    if category is None:
        return _catalog_menu(deps)
    return format_category_listing(category, deps.commerce.list_products(category.category_id))


async def handle_browsing_category(turn: Turn, deps: HandlerDeps) -> Transition:
    context = turn.context if isinstance(turn.context, CategoryContext) else CategoryContext()
    normalized = normalize(turn.text)

    if normalized in BACK_WORDS:
        return Transition(
            next_state=ConversationState.BROWSING_CATALOG,
            context=EmptyContext(),
            replies=[_catalog_menu(deps)],
        )
    if normalized in MORE_WORDS:
        return Transition(replies=[_relist(deps, context)])

    index = parse_index(turn.text)
    if index is None:
        return await handle_ai_chat(turn, deps)

    product_ids = _active_product_ids(deps, context)
    if not 1 <= index <= len(product_ids):
        return Transition(replies=[replies.INVALID_PRODUCT_NUMBER])

    customer_id = turn.customer.customer_id
    product_id = product_ids[index - 1]
    product = deps.commerce.get_product(product_id)
    result = deps.commerce.add_to_cart(customer_id, product_id)

    if result in (AddToCartResult.ADDED, AddToCartResult.UPDATED) and product is not None:
        deps.conversations.adjust_lead_score(customer_id, ADD_TO_CART_BONUS)
        return Transition(
            replies=[replies.added_to_cart(product.name, result == AddToCartResult.UPDATED)]
        )
    if result == AddToCartResult.OUT_OF_STOCK and product is not None:
        return Transition(replies=[replies.out_of_stock(product.name)])
    return Transition(replies=[replies.PRODUCT_NOT_FOUND])
