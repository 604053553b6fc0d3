"""
Application configuration for api-pool-prices.

Centralizes environment variables using python-dotenv.

Note:
- Pools are not configured here: a pool starts being tracked on its first
  query (or when it is found in the snapshot on startup).
- The snapshot backend is either a JSON file (default) or MongoDB.
"""

import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """
    Configuration settings for the api-pool-prices service.
    """

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    APP_NAME: str = os.getenv("APP_NAME", "api-pool-prices")

    # Chain / producers
    CHAIN: str = os.getenv("CHAIN", "testnet").lower()
    RPC_URL: str = (
        "http://localhost:8545"
        if CHAIN == "local"
        else os.getenv("RPC_URL", "https://rpc.ankr.com/monad_testnet")
    )
    PRICE_SOURCE: str = os.getenv("PRICE_SOURCE", "rpc").lower()  # rpc | thegraph
    THEGRAPH_ENDPOINT: str = os.getenv("THEGRAPH_ENDPOINT", "")
    THEGRAPH_API_KEY: str = os.getenv("THEGRAPH_API_KEY", "")
    UPSTREAM_TIMEOUT_S: float = float(os.getenv("UPSTREAM_TIMEOUT_S", "20"))

    # Swap volume: which pool token is the USD leg, and its decimals
    USD_TOKEN_INDEX: int = int(os.getenv("USD_TOKEN_INDEX", "1"))
    USD_TOKEN_DECIMALS: int = int(os.getenv("USD_TOKEN_DECIMALS", "18"))
    LOG_BLOCK_CHUNK: int = int(os.getenv("LOG_BLOCK_CHUNK", "100"))
    INITIAL_LOOKBACK_BLOCKS: int = int(os.getenv("INITIAL_LOOKBACK_BLOCKS", "100"))

    # Scheduling
    PRICE_POLL_EVERY_S: float = float(os.getenv("PRICE_POLL_EVERY_S", "5"))
    VOLUME_POLL_EVERY_S: float = float(os.getenv("VOLUME_POLL_EVERY_S", "10"))
    SNAPSHOT_EVERY_S: float = float(os.getenv("SNAPSHOT_EVERY_S", "60"))

    # Snapshot persistence
    SNAPSHOT_BACKEND: str = os.getenv("SNAPSHOT_BACKEND", "file").lower()  # file | mongo
    DATA_FILE_PATH: str = os.getenv(
        "DATA_FILE_PATH",
        "./priceData_local.json" if CHAIN == "local" else "./priceData.json",
    )
    MONGODB_URL: str = os.getenv("MONGODB_URL", "mongodb://mongo-market-data:27017")
    MONGODB_DB_NAME: str = os.getenv("MONGODB_DB_NAME", "api_pool_prices")
    SNAPSHOT_KEY: str = os.getenv("SNAPSHOT_KEY", f"price_data_{CHAIN}")


settings = Settings()
