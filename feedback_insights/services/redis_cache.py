import redis
from typing import Optional, TypeVar, Type
from pydantic import BaseModel
from feedback_insights.config import settings

T = TypeVar("T", bound=BaseModel)


class RedisCache:
    def __init__(self, url: Optional[str] = None):
        self.client = redis.from_url(
            url or settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=5,
        )

    def get(self, key: str, model: Type[T]) -> Optional[T]:
        """Get cached item and deserialize to Pydantic model."""
        data = self.client.get(key)
        if data:
            return model.model_validate_json(data)
        return None

    def set(self, key: str, value: BaseModel, ttl_seconds: int = 0) -> None:
        """Cache Pydantic model; a TTL of 0 keeps it until overwritten."""
        if ttl_seconds > 0:
            self.client.setex(key, ttl_seconds, value.model_dump_json())
        else:
            self.client.set(key, value.model_dump_json())

    def ping(self) -> bool:
        return bool(self.client.ping())
