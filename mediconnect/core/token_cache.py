import hashlib
import json
import logging
import time
from typing import Optional

import redis

logger = logging.getLogger(__name__)


class RedisTokenCache:
    """Short-lived record of tokens that already passed full verification."""

    key_prefix = "token:verified:"

    def __init__(self, client, ttl_seconds: int = 60):
        self.client = client
        self.ttl_seconds = ttl_seconds

    def _key(self, token: str) -> str:
        return self.key_prefix + hashlib.sha256(token.encode()).hexdigest()

    def get(self, token: str) -> Optional[dict]:
        try:
            cached = self.client.get(self._key(token))
        except redis.RedisError as e:
            logger.warning(f"Token cache lookup failed: {e}")
            return None
        if cached is None:
            return None
        try:
            return json.loads(cached)
        except ValueError as e:
            logger.warning(f"Discarding unreadable token cache entry: {e}")
            return None

    def put(self, token: str, payload: dict, expires_at: int) -> None:
        # Never outlive the token itself
        ttl = min(self.ttl_seconds, int(expires_at - time.time()))
        if ttl <= 0:
            return
        try:
            self.client.setex(self._key(token), ttl, json.dumps(payload))
        except redis.RedisError as e:
            logger.warning(f"Token cache write failed: {e}")
