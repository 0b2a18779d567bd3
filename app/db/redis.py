# app/db/redis.py
import redis
from app.core.config import settings


def get_redis_client():
    """
    Creates and returns a new Redis client instance.
    Used for fresh connections, e.g. the change-feed stream endpoints.
    """
    return redis.from_url(settings.REDIS_URL, decode_responses=True)


# Shared instance for publishers. from_url does not connect until first use.
redis_client = get_redis_client()
