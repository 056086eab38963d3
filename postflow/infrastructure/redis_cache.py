# postflow/infrastructure/redis_cache.py
import redis.asyncio as aioredis


def create_redis(url: str) -> aioredis.Redis:
    # from_url does not connect until the first command
    return aioredis.from_url(url, decode_responses=True)
