from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
import logging

logger = logging.getLogger(__name__)


class DataBase:
    client: AsyncIOMotorClient = None   # type: ignore
    blog: AsyncIOMotorDatabase = None   # type: ignore


db = DataBase()


async def connect_to_mongo(settings):
    logger.info("Connecting to mongo...")
    db.client = AsyncIOMotorClient(settings.mongo_uri,
                                   maxPoolSize=10,
                                   minPoolSize=10,
                                   tz_aware=True)
    db.blog = db.client.get_default_database(default=settings.mongo_database)
    logger.info("connected to %s...", db.blog.name)
    return db.blog


async def close_mongo_connection():
    logger.info("closing connection...")
    if db.client is not None:
        db.client.close()
    logger.info("closed connection")
