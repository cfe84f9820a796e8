"""
Fill an empty database with a small menu and a few customers, one per tier.
Safe to run twice: nothing is inserted when users already exist.
"""

import logging
import os
import sys

project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.append(project_root)

from sqlmodel import Session, select

from brewshop.config import configure_logging
from brewshop.models import Product, User, UserTier
from brewshop.utils.db import create_db_and_tables, engine

logger = logging.getLogger("seed_db")

PRODUCTS = [
    Product(name="Espresso Blend", description="Dark roast, chocolate and molasses", price=58.0,
            category="Beans", tags=["Morning", "Energy"]),
    Product(name="Ethiopia Yirgacheffe", description="Light roast, floral and citrus", price=72.0,
            category="Beans", tags=["Afternoon", "Refreshing"]),
    Product(name="Colombia Huila", description="Medium roast, nutty and sweet", price=64.0,
            category="Beans", tags=["Comfort"]),
    Product(name="Cold Brew", description="Steeped for 18 hours", price=18.0,
            category="Drinks", tags=["Sunny", "Refreshing"]),
    Product(name="Butter Croissant", description="Baked every morning", price=14.0,
            category="Bakery", tags=["PASTRY", "Morning"]),
    Product(name="Chocolate Babka", description="Sliced to order", price=40.0,
            category="Bakery", tags=["PASTRY", "Comfort"]),
]

USERS = [
    User(name="Noa Levi", email="noa@example.com"),
    User(name="Avi Cohen", email="avi@example.com", tier=UserTier.GOLD),
    User(name="Dana Mizrahi", email="dana@example.com", tier=UserTier.PLATINUM),
]


def main():
    configure_logging()
    create_db_and_tables()

    with Session(engine) as session:
        if session.exec(select(User)).first():
            logger.info("Database already seeded, nothing to do")
            return

        session.add_all(PRODUCTS + USERS)
        session.commit()
        logger.info("Seeded %d products and %d users", len(PRODUCTS), len(USERS))


if __name__ == "__main__":
    main()
