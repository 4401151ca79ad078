"""
AST Cache - Parses source files once per (path, modification time).

Features:
- Bounded in-memory cache (oldest entries evicted first)
- Time-based expiry (1 hour TTL by default)
- Parse failures cached as None so broken files are not re-read
"""

import ast
import hashlib
import logging
import time
from collections import OrderedDict
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

logger = logging.getLogger(__name__)


class AstCache:
    """
    Parses Python source files and keeps the trees in memory

    Usage:
    ```python
    cache = AstCache(ttl=600)
    tree = cache.parse(Path("app/views.py"))
    if tree is None:
        print("unparseable")
    ```
    """

    # Cache TTL in seconds (1 hour)
    CACHE_TTL = 3600
    MAX_ENTRIES = 512

    def __init__(self, ttl: int = CACHE_TTL, max_entries: int = MAX_ENTRIES):
        self.ttl = ttl
        self.max_entries = max_entries
        self._entries: "OrderedDict[str, Tuple[float, Optional[ast.Module]]]" = OrderedDict()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def cache_key(path: Union[str, Path], mtime: float) -> str:
        """Identity of one version of one file"""
        return hashlib.md5(f"{Path(path).resolve()}:{mtime}".encode("utf-8")).hexdigest()

    def parse(self, path: Union[str, Path]) -> Optional[ast.Module]:
        """
        Return the parsed module for a file

        Args:
            path: Source file path

        Returns:
            ast.Module, or None when the file is missing or does not parse
        """
        path = Path(path)
        try:
            mtime = path.stat().st_mtime
        except OSError as e:
            logger.debug(f"Cannot stat {path}: {e}")
            return None

        key = self.cache_key(path, mtime)
        if key in self._entries and self._is_cache_valid(key):
            self.hits += 1
            self._entries.move_to_end(key)
            return self._entries[key][1]

        self.misses += 1
        tree = self._parse_file(path)
        self._entries[key] = (time.time(), tree)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)
        return tree

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def stats(self) -> Dict[str, int]:
        return {"entries": len(self._entries), "hits": self.hits, "misses": self.misses}

    def _is_cache_valid(self, key: str) -> bool:
        parsed_at, _ = self._entries[key]
        return time.time() - parsed_at < self.ttl

    @staticmethod
    def _parse_file(path: Path) -> Optional[ast.Module]:
        try:
            source = path.read_text(encoding="utf-8")
            return ast.parse(source, filename=str(path))
        except (OSError, UnicodeDecodeError, SyntaxError, ValueError) as e:
            logger.debug(f"Failed to parse {path}: {e}")
            return None
