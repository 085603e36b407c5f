"""
Token Blacklist Management
==========================

Revocation list for access tokens, keyed by JWT id.
The database table is authoritative; when REDIS_URL is configured, entries
are mirrored to redis with a TTL and checked there first.
"""

import logging
from datetime import datetime
from typing import Optional

from redis import Redis
from redis.exceptions import RedisError
from sqlalchemy.orm import Session

from .config import get_settings
from .db.models import TokenBlacklist

logger = logging.getLogger(__name__)

BLACKLIST_PREFIX = "token:blacklist:"

_redis_client: Optional[Redis] = None
_redis_url: Optional[str] = None


def get_redis_client() -> Optional[Redis]:
    """Get Redis client (singleton per URL), or None when not configured/unreachable."""
    global _redis_client, _redis_url

    url = get_settings().redis_url
    if not url:
        return None

    if _redis_client is None or _redis_url != url:
        try:
            client = Redis.from_url(url, decode_responses=True, socket_connect_timeout=2)
            client.ping()
        except RedisError as e:
            logger.warning(f"Redis connection failed: {e}. Using database fallback.")
            return None
        _redis_client = client
        _redis_url = url

    return _redis_client


class TokenRevocationList:
    """Revoked-token lookups for one database session"""

    def __init__(self, db: Session):
        self.db = db

    def revoke(self, jti: str, expires_at: datetime, user_id: Optional[str] = None,
               token_type: str = "access") -> None:
        """Record a revoked token (idempotent)"""
        if not self.db.query(TokenBlacklist).filter(TokenBlacklist.jti == jti).first():
            self.db.add(TokenBlacklist(
                jti=jti,
                token_type=token_type,
                user_id=user_id,
                expires_at=expires_at,
            ))
            self.db.commit()

        redis = get_redis_client()
        if redis:
            try:
                ttl_seconds = max(int((expires_at - datetime.utcnow()).total_seconds()), 60)
                redis.setex(f"{BLACKLIST_PREFIX}{jti}", ttl_seconds, token_type)
            except RedisError as e:
                logger.warning(f"Redis blacklist add failed: {e}")

    def is_revoked(self, jti: str) -> bool:
        redis = get_redis_client()
        if redis:
            try:
                if redis.exists(f"{BLACKLIST_PREFIX}{jti}"):
                    return True
            except RedisError as e:
                logger.warning(f"Redis blacklist check failed: {e}")

        return self.db.query(TokenBlacklist).filter(TokenBlacklist.jti == jti).first() is not None

    def purge_expired(self) -> int:
        """Delete entries whose tokens have expired anyway"""
        removed = (
            self.db.query(TokenBlacklist)
            .filter(TokenBlacklist.expires_at < datetime.utcnow())
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return removed
