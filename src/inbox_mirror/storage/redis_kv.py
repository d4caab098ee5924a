"""
Redis-based record store.

Alternative to the git-notes store for deployments that keep mirror state
outside the archive. Keys are the same content digests, namespaced by a
prefix, so a key scan enumerates the known message-ids.
"""

from __future__ import annotations
import json
from typing import Any, Dict, Optional, Set
import redis
from inbox_mirror.logging import logger
from inbox_mirror.storage.keys import hash_key
from inbox_mirror.storage.local_state import StorageError


class RedisMirrorStore:
    """
    Redis-backed implementation of the MirrorStore protocol.

    Unlike a cache, every failure here propagates as StorageError: a scan
    must abort rather than proceed on a partial view of what was delivered.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        prefix: str = "inbox-mirror:",
        client: Optional[redis.Redis] = None,
    ) -> None:
        """
        Initialize Redis connection.

        Args:
            host: Redis server hostname
            port: Redis server port
            db: Redis database number
            prefix: Namespace prepended to every digest
            client: Pre-built client (skips connecting and pinging)

        Raises:
            redis.ConnectionError: If connection to Redis fails
        """
        self.prefix = prefix
        if client is not None:
            self.client = client
            return
        try:
            self.client = redis.Redis(
                host=host,
                port=port,
                db=db,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
            self.client.ping()
            logger.info(f"Connected to Redis at {host}:{port}/{db}")
        except redis.ConnectionError as e:
            logger.error(f"Failed to connect to Redis: {e}")
            raise

    def _redis_key(self, key: str) -> str:
        return f"{self.prefix}{hash_key(key)}"

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """
        Get the record stored for ``key``.

        Raises:
            StorageError: On Redis errors or undecodable values
        """
        try:
            raw = self.client.get(self._redis_key(key))
        except redis.RedisError as e:
            logger.error(f"Redis GET error for key '{key}': {e}")
            raise StorageError(f"Redis GET failed for '{key}': {e}") from e
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise StorageError(f"Value for '{key}' is not valid JSON: {e}") from e

    def set(self, key: str, value: Dict[str, Any], force: bool = False) -> None:
        """
        Store ``value`` under ``key``.

        Without ``force`` an existing value is left alone and StorageError is
        raised, matching the git-notes store.
        """
        try:
            written = self.client.set(self._redis_key(key), json.dumps(value), nx=not force)
        except redis.RedisError as e:
            logger.error(f"Redis SET error for key '{key}': {e}")
            raise StorageError(f"Redis SET failed for '{key}': {e}") from e
        if not written:
            raise StorageError(f"Record for '{key}' already exists (use force to overwrite)")
        logger.debug(f"Set Redis key '{self._redis_key(key)}' for '{key}'")

    def known_digests(self) -> Set[str]:
        """Return every stored digest (the prefix stripped)."""
        try:
            return {
                k[len(self.prefix):]
                for k in self.client.scan_iter(match=f"{self.prefix}*", count=1000)
            }
        except redis.RedisError as e:
            logger.error(f"Redis SCAN error: {e}")
            raise StorageError(f"Redis SCAN failed: {e}") from e
