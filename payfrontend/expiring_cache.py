# Process-wide key/value store whose entries expire after a per-put time to
# live. There is no locking: concurrent writers race and the last write wins.

import time


class ExpiringCache:
    def __init__(self, clock=time.monotonic):
        self.__clock = clock
        self.__entries = {}

    def put(self, key, value, ttl):
        """Store value under key for ttl milliseconds (None means forever)."""
        if ttl is not None and ttl < 0:
            raise ValueError("ttl must be non-negative")
        expires_at = None if ttl is None else self.__clock() + ttl / 1000
        self.__entries[key] = (expires_at, value)
        return value

    def get(self, key, default=None):
        entry = self.__entries.get(key)
        if entry is None:
            return default
        expires_at, value = entry
        if self.__expired(expires_at):
            del self.__entries[key]
            return default
        return value

    def purge(self):
        expired = [
            key
            for key, (expires_at, _) in self.__entries.items()
            if self.__expired(expires_at)
        ]
        for key in expired:
            del self.__entries[key]
        return len(expired)

    def __contains__(self, key):
        sentinel = object()
        return self.get(key, sentinel) is not sentinel

    def __len__(self):
        self.purge()
        return len(self.__entries)

    def __expired(self, expires_at):
        return expires_at is not None and self.__clock() >= expires_at
