# main.py
import asyncio

from fastapi import FastAPI
import uvicorn

from logger.logger import logger

# Try to import config - if any required configs are missing,
# the app will exit before starting
try:
    import config
except Exception as e:
    logger.critical(f"Failed to load configuration: {e}")
    import sys
    sys.exit(1)

from db.db import init_db, close_db_connection, init_object_storage, get_db
from db.init_db import init_db_indexes
from dependencies.messaging import build_cleanup_service
from repos.conversation_repo import ConversationRepository
from routes.routes import setup_routes
from services.cache_service import CacheService
from services.conversation_watcher import ConversationWatcher


# Initialize FastAPI app
app = FastAPI(title="Lost & Found Messaging API")

# Setup routes
setup_routes(app)


async def run_cleanup_once():
    return await build_cleanup_service(await get_db()).run_periodic_cleanup()


async def periodic_cleanup_loop(interval: int):
    """Runs until cancelled at shutdown"""
    while True:
        await asyncio.sleep(interval)
        try:
            result = await run_cleanup_once()
            logger.info(f"Scheduled cleanup finished: {result.model_dump()}")
        except Exception as e:
            logger.error(f"Scheduled cleanup could not run: {e}")


# Startup and shutdown events
@app.on_event("startup")
async def startup_db_client():
    logger.info("Starting up application")
    await init_db()
    await init_object_storage()
    await init_db_indexes(await get_db())

    app.state.profile_cache = CacheService(default_ttl=config.PROFILE_CACHE_TTL_SECONDS)
    app.state.conversation_watcher = ConversationWatcher(
        ConversationRepository(await get_db()),
        poll_interval=config.CONVERSATION_POLL_SECONDS,
    )
    app.state.cleanup_task = None
    if config.CLEANUP_INTERVAL_SECONDS > 0:
        app.state.cleanup_task = asyncio.create_task(periodic_cleanup_loop(config.CLEANUP_INTERVAL_SECONDS))
        logger.info(f"Periodic cleanup every {config.CLEANUP_INTERVAL_SECONDS}s")

@app.on_event("shutdown")
async def shutdown_db_client():
    logger.info("Shutting down application")
    if app.state.cleanup_task is not None:
        app.state.cleanup_task.cancel()
    app.state.conversation_watcher.close()
    await close_db_connection()

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
