import logging
import os
import sys

from qdrant_client.models import PointStruct, VectorParams, Distance
from sqlmodel import Session, select

# --- PATH SETUP ---
current_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.dirname(current_dir)
sys.path.append(project_root)

from brewshop.agent import PRODUCTS_COLLECTION, embed_text, get_ai_client, get_qdrant
from brewshop.config import configure_logging
from brewshop.models import Product
from brewshop.utils.db import engine

logger = logging.getLogger("embed_products")


def main():
    configure_logging()

    client = get_ai_client()
    if not client:
        logger.error("GOOGLE_API_KEY not found.")
        sys.exit(1)

    qdrant = get_qdrant()

    # Reset Collection
    if qdrant.collection_exists(PRODUCTS_COLLECTION):
        qdrant.delete_collection(PRODUCTS_COLLECTION)

    qdrant.create_collection(
        collection_name=PRODUCTS_COLLECTION,
        vectors_config=VectorParams(size=768, distance=Distance.COSINE),
    )

    logger.info("Semantic indexing of the menu (google-genai embeddings)")

    with Session(engine) as session:
        products = session.exec(select(Product).where(Product.is_archived == False)).all()  # noqa: E712
        points = []

        for product in products:
            text_to_embed = (
                f"Product: {product.name}. Category: {product.category}. "
                f"Tags: {', '.join(product.tags)}. Description: {product.description}"
            )

            try:
                embedding = embed_text(client, text_to_embed)
            except Exception:
                logger.exception("Failed to embed %s", product.name)
                continue

            points.append(PointStruct(
                id=product.id,
                vector=embedding,
                payload={
                    "name": product.name,
                    "price": product.price,
                    "category": product.category,
                    "description": product.description,
                },
            ))
            logger.info("Embedded: %s", product.name)

        if points:
            qdrant.upsert(collection_name=PRODUCTS_COLLECTION, points=points)
            logger.info("Indexed %d products.", len(points))


if __name__ == "__main__":
    main()
