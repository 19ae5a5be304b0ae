"""MongoDB database connection using Motor (async driver)."""
import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from pulseboard.config import settings

logger = logging.getLogger(__name__)

TIME_ENTRIES = "time_entries"
RATE_LIMIT_EVENTS = "rate_limit_events"


class Database:
    """MongoDB database connection manager."""

    client: AsyncIOMotorClient | None = None
    db: AsyncIOMotorDatabase | None = None

    async def connect(self) -> None:
        """Connect to MongoDB and make sure the indexes exist."""
        self.client = AsyncIOMotorClient(settings.mongodb_url)
        self.db = self.client[settings.mongodb_db_name]
        logger.info("Connected to MongoDB: %s", settings.mongodb_db_name)
        await self.ensure_indexes()

    async def disconnect(self) -> None:
        """Disconnect from MongoDB."""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")

    async def ensure_indexes(self) -> None:
        """
        Create the indexes the time tracking core relies on.

        The unique sparse index on ``active_user_id`` is what keeps a user
        down to one open entry when two ``start`` requests race: the field
        only exists while an entry is open.
        """
        if self.db is None:
            raise RuntimeError("Database not connected")

        entries = self.db[TIME_ENTRIES]
        await entries.create_index(
            "active_user_id", unique=True, sparse=True, name="one_open_entry_per_user"
        )
        await entries.create_index([("user_id", ASCENDING), ("start_time", DESCENDING)])
        await entries.create_index([("card_id", ASCENDING), ("start_time", DESCENDING)])

        events = self.db[RATE_LIMIT_EVENTS]
        await events.create_index(
            "created_at", expireAfterSeconds=settings.rate_limit_window_seconds
        )
        await events.create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])

    def get_collection(self, name: str):
        """Get a MongoDB collection."""
        if self.db is None:
            raise RuntimeError("Database not connected")
        return self.db[name]


# Global database instance
database = Database()


async def get_database() -> AsyncIOMotorDatabase:
    """Dependency to get database instance."""
    if database.db is None:
        raise RuntimeError("Database not connected")
    return database.db
