from __future__ import annotations

from motor.motor_asyncio import AsyncIOMotorClient

from config.settings import settings


def get_mongo_client() -> AsyncIOMotorClient:
    """
    Build a Motor client from settings. Connection is lazy (first operation).
    """
    return AsyncIOMotorClient(settings.MONGODB_URL, serverSelectionTimeoutMS=5000)
