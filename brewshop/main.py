# brewshop/main.py

"""
Used by FastAPI to handle the traffic (API endpoints)
This is the entry point for the API
It receives the JSON request, runs the matching action, and sends the ActionResult back
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlmodel import Session

from brewshop import actions
from brewshop.agent import BaristaDeps, barista_agent
from brewshop.config import configure_logging
from brewshop.dependencies import get_barista_deps, get_current_user, get_optional_user
from brewshop.exceptions import InvalidTierError
from brewshop.models import User
from brewshop.pricing import is_happy_hour
from brewshop.schemas import (
    ActionResult,
    ChatRequest,
    ChatResponse,
    CreateGiftCardRequest,
    CreateOrderRequest,
    RedeemGiftCardRequest,
)
from brewshop.tiers import parse_tier, resolve_tier_benefits
from brewshop.utils.db import create_db_and_tables, get_session

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    create_db_and_tables()
    yield


app = FastAPI(title="BrewShop API", lifespan=lifespan)

# Middleware block so the storefront can call the API from the browser
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def respond(result: ActionResult) -> JSONResponse:
    return JSONResponse(status_code=result.status_code, content=result.model_dump(mode="json"))


@app.get("/health")
def health_check():
    return {"status": "ok"}


# --- Tiers & Loyalty ---

@app.get("/tiers/{tier}")
def get_tier_benefits(tier: str):
    try:
        return resolve_tier_benefits(parse_tier(tier))
    except InvalidTierError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@app.get("/loyalty")
def loyalty_status(user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    return respond(actions.get_loyalty_status(session, user))


# --- Orders ---

@app.post("/orders")
def create_order(
    body: CreateOrderRequest,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return respond(actions.create_order(session, user, body))


@app.get("/orders")
def list_orders(user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    return respond(actions.list_orders(session, user))


@app.get("/orders/last")
def last_successful_order(user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    return respond(actions.get_last_successful_order(session, user))


@app.post("/orders/{order_id}/reorder")
def reorder(order_id: int, user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    return respond(actions.quick_reorder(session, user, order_id))


# --- Pricing ---

@app.get("/products/{product_id}/price")
def product_price(
    product_id: int,
    user: Optional[User] = Depends(get_optional_user),
    session: Session = Depends(get_session),
):
    return respond(actions.get_dynamic_price(session, user, product_id))


@app.get("/happy-hour")
def happy_hour():
    return {"active": is_happy_hour()}


# --- Gift cards ---

@app.post("/gift-cards")
def create_gift_card(
    body: CreateGiftCardRequest,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return respond(actions.create_gift_card(session, user, body))


@app.post("/gift-cards/redeem")
def redeem_gift_card(
    body: RedeemGiftCardRequest,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return respond(actions.redeem_gift_card(session, user, body))


@app.get("/gift-cards/{code}")
def get_gift_card(code: str, session: Session = Depends(get_session)):
    return respond(actions.get_gift_card(session, code))


# --- Notifications ---

@app.get("/notifications")
def list_notifications(
    unread_only: bool = False,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return respond(actions.list_notifications(session, user, unread_only))


@app.post("/notifications/read")
def mark_notifications_read(user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    return respond(actions.mark_notifications_read(session, user))


# --- AI Barista ---

@app.post("/chat", response_model=ChatResponse)
async def chat_endpoint(request: ChatRequest, deps: BaristaDeps = Depends(get_barista_deps)):
    """
    1. FastAPI calls get_barista_deps to get the database session and user ID
    2. The context is passed to the agent
    3. The response is returned to the user
    """
    try:
        result = await barista_agent.run(request.message, deps=deps)
        return ChatResponse(response=result.output)
    except Exception:
        logger.exception("Barista chat failed")
        raise HTTPException(status_code=500, detail="The barista is unavailable right now")


if __name__ == "__main__":
    # Standard usage is 'uvicorn brewshop.main:app --reload' from the project root
    uvicorn.run("brewshop.main:app", host="0.0.0.0", port=8000, reload=True)
