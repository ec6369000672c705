"""Redis decision cache of confirmed compromised accounts."""

import logging

import redis

from src.exceptions import CacheUnavailableError


logger = logging.getLogger(__name__)

DEFAULT_SET_NAME = "compromised_accts"


class DecisionCache:
    """Shared set of usernames already confirmed as compromised.

    Every worker process talks to the same Redis set. Members are only ever
    added; SADD makes concurrent inserts of one username safe without locks.
    """

    def __init__(self, client: redis.Redis, set_name: str = DEFAULT_SET_NAME):
        """Initialize the decision cache.

        Args:
            client: Redis client handle.
            set_name: Redis key of the set holding compromised usernames.
        """
        self.client = client
        self.set_name = set_name

    @classmethod
    def from_config(cls, config) -> "DecisionCache":
        """Build a cache from application configuration.

        Args:
            config: Config instance with redis_* settings.

        Returns:
            DecisionCache: Cache bound to a new Redis client.
        """
        client = redis.Redis(
            host=config.redis_host,
            port=config.redis_port,
            db=config.redis_db,
            username=config.redis_username,
            password=config.redis_password,
            socket_timeout=config.redis_timeout,
            socket_connect_timeout=config.redis_timeout,
            decode_responses=True,
        )
        return cls(client, config.redis_set_name)

    def ping(self) -> None:
        """Verify the store is reachable.

        Raises:
            CacheUnavailableError: If Redis does not answer.
        """
        try:
            self.client.ping()
        except redis.RedisError as e:
            raise CacheUnavailableError(f"Redis unreachable: {e}") from e

    def is_member(self, username: str) -> bool:
        """Check if a username is already known to be compromised.

        Raises:
            CacheUnavailableError: On Redis errors. Callers must not treat
                this as membership.
        """
        try:
            return bool(self.client.sismember(self.set_name, username))
        except redis.RedisError as e:
            raise CacheUnavailableError(
                f"membership check for {username} failed: {e}"
            ) from e

    def add(self, username: str) -> bool:
        """Idempotently add a username to the compromised set.

        Args:
            username: Lowercased SASL username.

        Returns:
            bool: True if this call inserted the member, False if it was
            already present.

        Raises:
            CacheUnavailableError: On Redis errors.
        """
        try:
            added = self.client.sadd(self.set_name, username)
        except redis.RedisError as e:
            raise CacheUnavailableError(f"insert of {username} failed: {e}") from e

        if not added:
            logger.debug(f"Cache: {username} already present in {self.set_name}")
        return bool(added)
