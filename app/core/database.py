from __future__ import annotations

import logging
from urllib.parse import urlparse

from beanie import init_beanie
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import ConnectionFailure, PyMongoError

from app.core.config import settings

logger = logging.getLogger(__name__)


def extract_database_name_from_url(mongodb_url: str) -> str:
    """Extract database name from MongoDB URL"""
    parsed_url = urlparse(mongodb_url)
    database_name = parsed_url.path.lstrip("/")

    # If no database specified in URL, use default
    if not database_name:
        return settings.MONGODB_DATABASE

    return database_name


def mask_mongodb_url(mongodb_url: str) -> str:
    """Hide the password part of a connection string."""
    if "@" not in mongodb_url:
        return mongodb_url
    credentials, _, host = mongodb_url.rpartition("@")
    scheme, sep, user_pass = credentials.rpartition("://")
    user = user_pass.split(":", 1)[0]
    return f"{scheme}{sep}{user}:***@{host}"


class Database:
    client: AsyncIOMotorClient | None = None
    database = None


db = Database()


async def get_database():
    """Get database instance"""
    return db.database


async def connect_to_mongo():
    """Create database connection and register the document models"""
    try:
        db.client = AsyncIOMotorClient(settings.MONGODB_URL)

        database_name = extract_database_name_from_url(settings.MONGODB_URL)
        db.database = db.client[database_name]

        await db.client.admin.command("ping")
        logger.info(f"Connected to MongoDB at {mask_mongodb_url(settings.MONGODB_URL)}")

        from app.models.payment_intent import PaymentIntent  # avoid circulars

        await init_beanie(database=db.database, document_models=[PaymentIntent])
        logger.info("Initialized Beanie")

        await initialize_collection_indexes(db.database)

    except ConnectionFailure as e:
        logger.error(f"Failed to connect to MongoDB: {e}")
        raise
    except Exception as e:
        logger.error(f"Unexpected error connecting to MongoDB: {e}")
        raise


async def close_mongo_connection():
    """Close database connection"""
    if db.client:
        db.client.close()
        logger.info("Disconnected from MongoDB")


async def initialize_collection_indexes(database):
    """Create indexes for collections Beanie does not manage (revoked tokens)."""
    from app.core.token_blocklist import get_token_blocklist

    try:
        await get_token_blocklist(database).ensure_indexes()
        logger.info("Ensured revoked token indexes")
    except PyMongoError as e:
        # Indexes might already exist or be created manually
        logger.error(f"Error initializing collection indexes: {e}", exc_info=True)
