from motor.motor_asyncio import AsyncIOMotorClient
from dotenv import load_dotenv
import os
import logging
from pathlib import Path
from contextlib import asynccontextmanager

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

logger = logging.getLogger(__name__)

class Database:
    client: AsyncIOMotorClient = None
    db = None

    async def connect(self):
        try:
            mongo_url = os.environ['MONGO_URL']
            self.client = AsyncIOMotorClient(mongo_url, tz_aware=True)
            self.db = self.client[os.environ['DB_NAME']]
            # Verify connection
            await self.db.command("ping")
            logger.info(f"Connected to MongoDB: {os.environ['DB_NAME']}")

            await self._create_indexes()
        except Exception as e:
            logger.error(f"Failed to connect to MongoDB: {e}")
            raise

    async def close(self):
        if self.client:
            self.client.close()
            logger.info("MongoDB connection closed")

    def get_db(self):
        return self.db

    async def _create_indexes(self):
        """Create MongoDB indexes for lookups and uniqueness rules."""
        try:
            # Users - email and phone are unique; phone/google_id only when present
            await self.db.users.create_index("user_id", unique=True)
            await self.db.users.create_index("email", unique=True)
            try:
                await self.db.users.create_index(
                    "phone", unique=True, partialFilterExpression={"phone": {"$type": "string"}}
                )
                await self.db.users.create_index(
                    "google_id", unique=True, partialFilterExpression={"google_id": {"$type": "string"}}
                )
            except Exception as e:
                # Index may already exist with different options
                logger.warning(f"User identity index not created: {e}")
            await self.db.users.create_index("reset_token_hash", sparse=True)
            await self.db.users.create_index("teams.team_id")
            await self.db.users.create_index("created_at")

            # Designs
            await self.db.designs.create_index("design_id", unique=True)
            await self.db.designs.create_index([("user_id", 1), ("updated_at", -1)])
            await self.db.designs.create_index("visibility")
            await self.db.designs.create_index("shared_with")
            await self.db.designs.create_index("created_at")

            # Templates
            await self.db.templates.create_index("template_id", unique=True)
            await self.db.templates.create_index([("category", 1), ("created_at", -1)])
            await self.db.templates.create_index("tags")

            # Favorites - a user may favorite a template at most once
            await self.db.favorites.create_index("favorite_id", unique=True)
            await self.db.favorites.create_index(
                [("user_id", 1), ("template_id", 1)],
                unique=True
            )

            # Teams - invitation acceptance looks teams up by token
            await self.db.teams.create_index("team_id", unique=True)
            await self.db.teams.create_index("invitations.token")
            await self.db.teams.create_index("members.user_id")

            # API keys
            await self.db.api_keys.create_index("key_id", unique=True)
            await self.db.api_keys.create_index("key", unique=True)
            await self.db.api_keys.create_index("user_id")

            # Activity logs
            await self.db.activity_logs.create_index([("user_id", 1), ("created_at", -1)])
            await self.db.activity_logs.create_index([("action", 1), ("created_at", -1)])
            await self.db.activity_logs.create_index("created_at")

            # Payments
            await self.db.payments.create_index("payment_id", unique=True)
            await self.db.payments.create_index("order_id")
            await self.db.payments.create_index([("user_id", 1), ("created_at", -1)])

            # Message log - email delivery history
            await self.db.message_logs.create_index([("created_at", -1)])
            await self.db.message_logs.create_index([("status", 1), ("created_at", -1)])
            logger.info("MongoDB indexes created/verified")
        except Exception as e:
            # Indexes may already exist, log but don't fail
            logger.warning(f"Index creation note: {e}")

# Global database instance
database = Database()

@asynccontextmanager
async def get_db_context():
    """Context manager for standalone scripts to access the database.

    Usage in scripts:
        async with get_db_context() as db:
            await db.users.find_one(...)
    """
    client = None
    try:
        mongo_url = os.environ['MONGO_URL']
        db_name = os.environ['DB_NAME']
        client = AsyncIOMotorClient(mongo_url, tz_aware=True)
        db = client[db_name]
        # Verify connection
        await db.command("ping")
        logger.info(f"Script connected to MongoDB: {db_name}")
        yield db
    finally:
        if client:
            client.close()
            logger.info("Script MongoDB connection closed")
