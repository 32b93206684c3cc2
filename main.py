"""
YelpCamp - Main Entry Point
Builds the store, session store and image storage from config and serves the app
"""
import logging
import sys

import uvicorn
from fastapi import FastAPI

import config
from database import InMemoryStore, PostgresStore, Store
from utils.sessions import MemorySessionStore, RedisSessionStore, SessionStore
from utils.storage import CloudinaryStorage, ImageStorage, LocalImageStorage
from webapp import AppDeps, create_app

logging.basicConfig(level=getattr(logging, config.LOG_LEVEL), format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def build_store() -> Store:
    if config.DATABASE_URL:
        return PostgresStore(config.DATABASE_URL, min_size=config.DB_POOL_MIN, max_size=config.DB_POOL_MAX)
    return InMemoryStore()


def build_session_store() -> SessionStore:
    if config.REDIS_URL:
        return RedisSessionStore.from_url(config.REDIS_URL)
    return MemorySessionStore()


def build_image_storage() -> ImageStorage:
    if config.cloudinary_configured():
        return CloudinaryStorage(
            config.CLOUDINARY_CLOUD_NAME, config.CLOUDINARY_KEY,
            config.CLOUDINARY_SECRET, folder=config.CLOUDINARY_FOLDER
        )
    return LocalImageStorage(config.UPLOADS_DIR, base_url="/uploads")


def build_deps() -> AppDeps:
    return AppDeps(
        store=build_store(),
        session_store=build_session_store(),
        image_storage=build_image_storage(),
        secret_key=config.session_secret(),
        debug=not config.IS_PRODUCTION,
        session_cookie=config.SESSION_COOKIE,
        session_max_age=config.SESSION_MAX_AGE,
        session_touch_after=config.SESSION_TOUCH_AFTER,
        session_https_only=config.SESSION_HTTPS_ONLY,
        uploads_dir=None if config.cloudinary_configured() else config.UPLOADS_DIR,
        allowed_image_formats=config.ALLOWED_IMAGE_FORMATS,
        max_upload_files=config.MAX_UPLOAD_FILES,
    )


def build_app() -> FastAPI:
    """Factory for `uvicorn main:build_app --factory`"""
    return create_app(build_deps())


def main() -> int:
    errors = config.validate_config()
    if errors:
        for error in errors:
            logger.critical(f"Config error: {error}")
        return 1

    logger.info(f"🚀 Server is running on http://{config.HOST}:{config.PORT}")
    uvicorn.run(build_app(), host=config.HOST, port=config.PORT, log_level=config.LOG_LEVEL.lower())
    return 0


if __name__ == "__main__":
    sys.exit(main())
