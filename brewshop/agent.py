# brewshop/agent.py
"""
The AI barista.
1. Defines the Context: the database session and the customer we are talking to
2. Defines the Tools: loyalty progress, orders, happy hour prices, gift cards, product search
3. Defines the System Prompt: the barista's personality and rules

The agent itself is a static object without a DB connection.
BaristaDeps is built per request and passed in on every run (Dependency Injection).
"""

import logging
from datetime import datetime
from functools import lru_cache

from pydantic import BaseModel, ConfigDict
from pydantic_ai import Agent, RunContext
from sqlmodel import Session, select

from brewshop.config import get_settings
from brewshop.exceptions import BrewShopError
from brewshop.giftcards import get_gift_card_by_code
from brewshop.loyalty import get_loyalty_status
from brewshop.models import Order, Product, User
from brewshop.pricing import calculate_happy_hour_price
from brewshop.tiers import resolve_tier_benefits

logger = logging.getLogger(__name__)

PRODUCTS_COLLECTION = "coffee_products"
EMBEDDING_MODEL = "text-embedding-004"


# The Context - Dependency Injection
class BaristaDeps(BaseModel):
    """
    Holds what the agent needs at run time.
    Notice DB is not initialized here. It is passed in per request.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)  # Allow Session to be used as a type

    user_id: int  # Who is the barista speaking to?
    db: Session  # Database connection


# Agent Definition
# Model resolution is deferred so importing this module does not need an API key
barista_agent = Agent(
    get_settings().barista_model,
    deps_type=BaristaDeps,
    defer_model_check=True,
    system_prompt=(
        "You are the AI barista of 'BrewShop', a coffee brand with a loyalty program. "
        "You know coffee chemistry (extraction, roast profiles) but explain it simply. "
        "Keep answers short, three or four sentences unless asked for detail. "
        "Use the provided tools to look up the customer's tier, orders, prices and gift cards "
        "before answering. Never invent prices or discounts. "
        "Today's date is " + datetime.now().strftime("%Y-%m-%d")
    ),
)


# Tools Definition

@barista_agent.tool
def get_customer_profile(ctx: RunContext[BaristaDeps]) -> str:
    """
    Fetch the profile of the CURRENT customer.
    Returns their name, loyalty tier and points balance.
    """
    customer = ctx.deps.db.get(User, ctx.deps.user_id)
    if not customer:
        return "Error: Customer not found"

    return f"Customer Name: {customer.name}, Tier: {customer.tier.value}, Points: {customer.points}"


@barista_agent.tool
def get_loyalty_progress(ctx: RunContext[BaristaDeps]) -> str:
    """
    How far the customer is from the next loyalty tier.
    Use this when the customer asks about VIP status or perks.
    """
    status = get_loyalty_status(ctx.deps.db, ctx.deps.user_id)
    benefits = resolve_tier_benefits(status.tier)

    report = f"Tier: {status.tier.value}, Qualifying orders: {status.order_count}, Total spent: {status.total_spent}"
    if status.next_tier:
        report += f", {status.orders_to_next_tier} more orders to reach {status.next_tier.value}"
    else:
        report += ", top tier reached"
    report += (
        f". Perks: VIP discount {benefits.vip_discount:.0%}, happy hour discount "
        f"{benefits.happy_hour_discount:.0%}, free shipping: {benefits.free_shipping}"
    )
    return report


@barista_agent.tool
def list_recent_orders(ctx: RunContext[BaristaDeps]) -> str:
    """
    Get the customer's most recent orders.
    Use this when the customer asks "Where is my coffee?" or "Show my history"
    """
    statement = (
        select(Order)
        .where(Order.user_id == ctx.deps.user_id)
        .order_by(Order.created_at.desc())
        .limit(5)
    )
    orders = ctx.deps.db.exec(statement).all()

    if not orders:
        return "No recent orders found"

    report = []
    for order in orders:
        report.append(f"Order ID: {order.id}, Date: {order.created_at}, Total: {order.total}, Status: {order.status.value}")

    return "\n".join(report)


@barista_agent.tool
def get_product_price(ctx: RunContext[BaristaDeps], product_id: int) -> str:
    """
    Current price of a product for this customer, including happy hour discounts.
    """
    product = ctx.deps.db.get(Product, product_id)
    if not product or product.is_archived:
        return "Error: Product not found"

    customer = ctx.deps.db.get(User, ctx.deps.user_id)
    benefits = resolve_tier_benefits(customer.tier if customer else None)
    price = calculate_happy_hour_price(product.price, product.tags, benefits)

    if price.is_happy_hour:
        return (
            f"{product.name}: {price.final_price} instead of {price.original_price} "
            f"({price.discount_percent:.0f}% happy hour discount)"
        )
    return f"{product.name}: {price.final_price}"


@barista_agent.tool
def check_gift_card(ctx: RunContext[BaristaDeps], code: str) -> str:
    """
    Look up a gift card by its code (e.g. GC-ABCD2345).
    """
    try:
        info = get_gift_card_by_code(ctx.deps.db, code)
    except BrewShopError as e:
        return f"Error: {e.message}"

    if info.is_redeemed:
        state = "already redeemed"
    elif info.is_expired:
        state = "expired"
    else:
        state = "active"
    return f"Gift card {info.code}: balance {info.balance}, {state}"


# --- VECTOR DB & AI CLIENT SETUP ---
# Created on first use so the app starts without Qdrant files or an API key

@lru_cache
def get_qdrant():
    from qdrant_client import QdrantClient

    return QdrantClient(path=get_settings().qdrant_path)


@lru_cache
def get_ai_client():
    api_key = get_settings().google_api_key
    if not api_key:
        return None

    from google import genai

    return genai.Client(api_key=api_key)


def embed_text(client, text: str) -> list:
    response = client.models.embed_content(model=EMBEDDING_MODEL, contents=text)
    return response.embeddings[0].values


@barista_agent.tool_plain
def search_products(query: str) -> str:
    """
    Search the menu by concept (Semantic Search).
    Use for: 'recommendations', 'something fruity', 'a rainy day drink', or vague descriptions.
    """
    ai_client = get_ai_client()
    if not ai_client:
        return "Error: AI Client not initialized."

    logger.info("Vector search query: %s", query)

    try:
        user_vector = embed_text(ai_client, query)
        hits = get_qdrant().query_points(
            collection_name=PRODUCTS_COLLECTION,
            query=user_vector,
            limit=3,
        ).points
    except Exception as e:
        logger.exception("Vector search failed")
        return f"Search Error: {type(e).__name__}"

    report = []
    for hit in hits:
        info = hit.payload
        if hit.score > 0.4:
            report.append(f"Product: {info['name']} ({info['price']}) - {info['description']}")

    return "\n".join(report) if report else "No relevant matches found."
