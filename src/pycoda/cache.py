"""
A file based cache for Api responses.
-------------------------------------

Each cached response lives in its own json file, named after a digest of
the request (url and parameters), and holding a
``[created_at, status_code, body]`` json array. Entries older than
``max_age`` seconds are deleted the first time they are found: there is
no background cleanup.

Caching is strictly best-effort: if the cache directory can't be created,
caching is disabled; if a file can't be read or written, it's a cache miss.
Nothing in here should ever make an api call fail.
"""

import os
import re
import time
import hashlib
import logging
import json as modjson
from pathlib import Path
from typing import Any, NamedTuple

logger = logging.getLogger(__name__)

CACHE_FILE_RE = re.compile(r'^[0-9a-f]{40}\.json$')


class CacheEntry(NamedTuple):
    created_at: float #: epoch seconds
    status: int       #: the Http status code of the cached response
    body: Any         #: the json-decoded response content


class CacheStore:
    """A content-addressed, expiring store for Api responses."""
    def __init__(self, enabled: bool = False, max_age: int = 600,
                 directory: str|Path = '.codacache') -> None:
        self.max_age = max_age
        self.directory = Path(directory)
        self._enabled = False
        if enabled:
            try:
                self.directory.mkdir(parents=True, exist_ok=True)
                self._enabled = True
            except OSError as e:
                logger.warning('Cannot create cache directory %s, caching '
                               'is disabled: %s', self.directory, e)

    @property
    def enabled(self) -> bool:
        """``True`` if the cache is active and its directory is available."""
        return self._enabled

    @staticmethod
    def signature(url: str, params: dict|None = None) -> str:
        """Return the cache key for a request to ``url`` with ``params``.

        This is a pure function of its inputs: the same request will
        always map to the same key, across different runs.
        """
        canonical = modjson.dumps([url, params or {}], sort_keys=True,
                                  separators=(',', ':'), default=str)
        return hashlib.sha1(canonical.encode('utf8')).hexdigest()

    def path_for(self, signature: str) -> Path:
        return self.directory / f'{signature}.json'

    def _discard(self, pth: Path) -> None:
        try:
            pth.unlink()
        except OSError: # somebody else got there first, or we can't
            pass

    def lookup(self, signature: str) -> CacheEntry|None:
        """Return the cached entry for ``signature``, or ``None``.

        An expired entry is deleted and reported as missing.
        """
        if not self._enabled:
            return None
        pth = self.path_for(signature)
        if not pth.is_file():
            return None
        try:
            with open(pth, 'r', encoding='utf8') as f:
                created_at, status, body = modjson.loads(f.read())
            entry = CacheEntry(float(created_at), int(status), body)
        except (OSError, ValueError, TypeError) as e:
            logger.warning('Discarding unreadable cache file %s: %s', pth, e)
            self._discard(pth)
            return None
        if time.time() - entry.created_at > self.max_age:
            logger.debug('Cache entry %s expired', signature)
            self._discard(pth)
            return None
        return entry

    def store(self, signature: str, status: int, body: Any) -> None:
        """Save a response in the cache, overwriting any previous entry."""
        if not self._enabled:
            return
        pth = self.path_for(signature)
        try:
            content = modjson.dumps([int(time.time()), status, body])
            with open(pth, 'w', encoding='utf8') as f:
                f.write(content)
        except (OSError, TypeError, ValueError) as e:
            logger.warning('Cannot write cache file %s: %s', pth, e)
            return
        logger.debug('Cache entry %s stored', signature)

    def clear(self) -> int:
        """Delete all the cache files, return the number of deleted entries."""
        if not self.directory.is_dir():
            return 0
        deleted = 0
        for name in os.listdir(self.directory):
            if CACHE_FILE_RE.match(name):
                try:
                    (self.directory / name).unlink()
                    deleted += 1
                except OSError:
                    pass
        logger.debug('Cache cleared, %d entries deleted', deleted)
        return deleted
