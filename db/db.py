import asyncio
from typing import Optional, Tuple

from fastapi import HTTPException, status
from minio import Minio
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from config import (
    DATABASE_URL,
    DATABASE_NAME,
    DB_MAX_POOL_SIZE,
    DB_MAX_RECONNECT_ATTEMPTS,
    DB_RECONNECT_DELAY,
    DB_SERVER_SELECTION_TIMEOUT_MS,
    DB_CONNECT_TIMEOUT_MS,
    DB_USE_TRANSACTIONS,
    MINIO_USERNAME,
    MINIO_PASSWORD,
    MINIO_SERVER,
    MINIO_BUCKET,
)
from db.transactions import mongo_transaction, no_transaction
from logger.logger import logger

# Process-wide connections, created at startup
client: Optional[AsyncIOMotorClient] = None
db: Optional[AsyncIOMotorDatabase] = None
minio_client: Optional[Minio] = None

def _unavailable(what: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=f"{what} unavailable",
    )

async def init_db():
    """Connect to MongoDB, retrying DB_MAX_RECONNECT_ATTEMPTS times"""
    global client, db

    for attempt in range(1, DB_MAX_RECONNECT_ATTEMPTS + 1):
        try:
            if client is None:
                # tz_aware so timestamps compare with get_current_utc_time()
                client = AsyncIOMotorClient(
                    DATABASE_URL,
                    maxPoolSize=DB_MAX_POOL_SIZE,
                    serverSelectionTimeoutMS=DB_SERVER_SELECTION_TIMEOUT_MS,
                    connectTimeoutMS=DB_CONNECT_TIMEOUT_MS,
                    retryWrites=True,
                    retryReads=True,
                    tz_aware=True,
                )
                db = client[DATABASE_NAME]
            await client.admin.command('ping')
            logger.info(f"Connected to MongoDB database '{DATABASE_NAME}'")
            return
        except Exception as e:
            logger.error(f"MongoDB connection attempt {attempt}/{DB_MAX_RECONNECT_ATTEMPTS} failed: {e}")
            if attempt < DB_MAX_RECONNECT_ATTEMPTS:
                await asyncio.sleep(DB_RECONNECT_DELAY)

    logger.error("Giving up on MongoDB; requests will get 503 until it comes back")

async def get_db() -> AsyncIOMotorDatabase:
    """Live database handle; reconnects once before answering 503"""
    if client is None:
        await init_db()
    if db is None:
        raise _unavailable("Database service")

    try:
        await client.admin.command('ping')
    except Exception as e:
        logger.error(f"Lost MongoDB connection: {e}")
        await init_db()
        if db is None:
            raise _unavailable("Database service")
    return db

def get_transaction():
    """
    Unit-of-work factory for message + conversation writes.
    Without DB_USE_TRANSACTIONS the writes run back to back without a session.
    """
    if DB_USE_TRANSACTIONS and client is not None:
        return mongo_transaction(client)
    return no_transaction

async def close_db_connection():
    global client, db
    if client:
        client.close()
        client = None
        db = None
        logger.info("MongoDB connection closed")

def _minio_endpoint(server: str) -> Tuple[str, bool]:
    """Minio wants a bare host[:port]; the scheme decides TLS"""
    if server.startswith("https://"):
        return server[len("https://"):].rstrip('/'), True
    if server.startswith("http://"):
        return server[len("http://"):].rstrip('/'), False
    return server.rstrip('/'), False

async def init_object_storage():
    """Create the MinIO client and make sure the evidence bucket exists"""
    global minio_client

    endpoint, secure = _minio_endpoint(MINIO_SERVER)
    minio_client = Minio(
        endpoint,
        access_key=MINIO_USERNAME,
        secret_key=MINIO_PASSWORD,
        secure=secure,
    )

    # the minio client is blocking
    if await asyncio.to_thread(minio_client.bucket_exists, MINIO_BUCKET):
        logger.info(f"Using existing bucket '{MINIO_BUCKET}'")
    else:
        await asyncio.to_thread(minio_client.make_bucket, MINIO_BUCKET)
        logger.info(f"Created bucket '{MINIO_BUCKET}'")

async def get_object_storage() -> Minio:
    if minio_client is None:
        await init_object_storage()
    if minio_client is None:
        raise _unavailable("Object storage service")
    return minio_client
