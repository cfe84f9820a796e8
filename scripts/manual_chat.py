"""
Talk to the AI barista from the terminal, as a given customer.

    python scripts/manual_chat.py --user-id 3
"""

import argparse
import os
import sys

# --- PATH FIX ---
# Get the path to the project root (one level up from 'scripts')
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.append(project_root)

from sqlmodel import Session, select

from brewshop.agent import barista_agent, BaristaDeps
from brewshop.config import configure_logging, get_settings
from brewshop.loyalty import get_loyalty_status
from brewshop.models import User
from brewshop.utils.db import engine


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Chat with the BrewShop barista as a customer")
    parser.add_argument("--user-id", type=int, help="Customer to chat as (default: list customers and exit)")
    return parser.parse_args()


def list_customers(session: Session) -> None:
    customers = session.exec(select(User).order_by(User.id)).all()
    if not customers:
        print("No customers found. Run scripts/seed_db.py first.")
        return
    for customer in customers:
        print(f"  {customer.id:>3}  {customer.name:<20} {customer.tier.value}")


def chat(session: Session, customer: User) -> None:
    status = get_loyalty_status(session, customer.id)
    print(f"Chatting as {customer.name} ({status.tier.value}, {status.order_count} orders). Type 'quit' to leave.")

    history = None
    while True:
        user_input = input("You: ").strip()
        if user_input.lower() in ("quit", "exit"):
            break
        if not user_input:
            continue

        deps = BaristaDeps(user_id=customer.id, db=session)
        try:
            result = barista_agent.run_sync(user_input, deps=deps, message_history=history)
        except Exception as e:
            print(f"Error: {e}")
            continue
        history = result.all_messages()
        print(f"Barista: {result.output}\n")


def main() -> int:
    args = parse_args()
    configure_logging()
    if not get_settings().google_api_key:
        print("Warning: GOOGLE_API_KEY is not set, the barista cannot answer.")

    with Session(engine) as session:
        if args.user_id is None:
            print("Customers:")
            list_customers(session)
            return 0

        customer = session.get(User, args.user_id)
        if not customer:
            print(f"Customer {args.user_id} not found. Known customers:")
            list_customers(session)
            return 1

        chat(session, customer)
    return 0


if __name__ == "__main__":
    sys.exit(main())
