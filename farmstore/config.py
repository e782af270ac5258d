"""
Configuration management for the storefront application.
Loads settings from environment variables and AWS Secrets Manager.
"""
import os
import json
import logging
import boto3
from typing import Optional

logger = logging.getLogger(__name__)


class Config:
    """Application configuration"""

    # Application settings
    APP_PORT: int = int(os.getenv("APP_PORT", "3000"))
    PROJECT_NAME: str = os.getenv("PROJECT_NAME", "green-africa-farm")
    REGION: str = os.getenv("REGION", "eu-west-1")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Redis settings
    REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT: int = int(os.getenv("REDIS_PORT", "6379"))
    REDIS_AUTH_TOKEN: Optional[str] = os.getenv("REDIS_AUTH_TOKEN")
    REDIS_DB: int = int(os.getenv("REDIS_DB", "0"))
    REDIS_SSL: bool = os.getenv("REDIS_SSL", "false").lower() in ("1", "true", "yes")

    # Order settings
    ORDER_ID_PREFIX: str = os.getenv("ORDER_ID_PREFIX", "GAF")
    ORDER_ID_MAX_ATTEMPTS: int = int(os.getenv("ORDER_ID_MAX_ATTEMPTS", "5"))
    ORDER_STATUS_POLICY: str = os.getenv("ORDER_STATUS_POLICY", "permissive")  # or "strict"

    # Client settings
    API_BASE_URL: str = os.getenv("API_BASE_URL", "http://localhost:3000/api")
    API_TIMEOUT_SECONDS: float = float(os.getenv("API_TIMEOUT_SECONDS", "10"))
    CART_STORAGE_PATH: Optional[str] = os.getenv("CART_STORAGE_PATH")

    # Redis connection settings
    REDIS_SOCKET_CONNECT_TIMEOUT: int = 5
    REDIS_SOCKET_TIMEOUT: int = 5
    REDIS_RETRY_ON_TIMEOUT: bool = True
    REDIS_MAX_CONNECTIONS: int = 50

    @classmethod
    def redis_url(cls) -> str:
        """Build the Redis connection URL"""
        scheme = "rediss" if cls.REDIS_SSL else "redis"
        auth = f":{cls.REDIS_AUTH_TOKEN}@" if cls.REDIS_AUTH_TOKEN else ""
        return f"{scheme}://{auth}{cls.REDIS_HOST}:{cls.REDIS_PORT}/{cls.REDIS_DB}"

    @classmethod
    def load_redis_secrets(cls) -> None:
        """Load Redis authentication token from AWS Secrets Manager"""
        if cls.REDIS_AUTH_TOKEN:
            return  # Already loaded from environment

        secret_name = os.getenv("REDIS_SECRET_NAME")
        if not secret_name:
            return  # No secret name provided, use no auth

        try:
            client = boto3.client("secretsmanager", region_name=cls.REGION)
            response = client.get_secret_value(SecretId=secret_name)
            secret_data = json.loads(response["SecretString"])

            cls.REDIS_AUTH_TOKEN = secret_data.get("auth_token")
            if "endpoint" in secret_data:
                cls.REDIS_HOST = secret_data["endpoint"]
            # Managed endpoints with an auth token require TLS
            cls.REDIS_SSL = True
        except Exception as e:
            logger.warning(f"Could not load Redis secrets from Secrets Manager: {e}")


# Load secrets at module import
Config.load_redis_secrets()
