"""
Manifest Loader - Reads entry points from a JSON route manifest.

Accepted shapes:
- a list of entry point objects
- `{"entry_points": [...], "exclude_routes": ["/internal/*"]}`

Each entry: `{"path": "/users/{id}", "methods": ["GET"], "handler": "app/views.py:show",
"middleware": [...], "annotations": [...], "tags": [...], "name": ...}`
"""

import fnmatch
import json
import logging
from pathlib import Path
from typing import Any, List, Optional

from apidoc_infer.analysis.entry_points import EntryPoint
from apidoc_infer.errors import ManifestError

logger = logging.getLogger(__name__)


class ManifestLoader:
    """
    Loads and filters entry points

    Usage:
    ```python
    entry_points = ManifestLoader(exclude_routes=["/health"]).load(Path("routes.json"))
    ```
    """

    def __init__(self, exclude_routes: Optional[List[str]] = None):
        self.exclude_routes = list(exclude_routes or [])

    def load(self, path: Path) -> List[EntryPoint]:
        """
        Parse a manifest file

        Raises:
            ManifestError: File unreadable, not JSON, malformed entries, or no entry points left
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except OSError as e:
            raise ManifestError(f"Cannot read manifest {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise ManifestError(f"Manifest {path} is not valid JSON: {e}") from e
        return self.parse(data, source=str(path))

    def parse(self, data: Any, source: str = "<manifest>") -> List[EntryPoint]:
        exclude = list(self.exclude_routes)
        if isinstance(data, dict):
            exclude += list(data.get("exclude_routes") or [])
            data = data.get("entry_points")
        if not isinstance(data, list):
            raise ManifestError(f"{source}: expected a list of entry points")

        entry_points = []
        for index, raw in enumerate(data):
            if not isinstance(raw, dict) or "path" not in raw or "handler" not in raw:
                raise ManifestError(f"{source}: entry #{index} needs 'path' and 'handler'")
            entry_point = EntryPoint.from_dict(raw)
            if self._excluded(entry_point, exclude):
                logger.debug(f"Excluded route {entry_point.path}")
                continue
            if not entry_point.methods:
                continue
            entry_points.append(entry_point)

        if not entry_points:
            raise ManifestError(f"{source}: no entry points to document")
        logger.info(f"Loaded {len(entry_points)} entry points from {source}")
        return entry_points

    @staticmethod
    def _excluded(entry_point: EntryPoint, patterns: List[str]) -> bool:
        return any(
            fnmatch.fnmatch(entry_point.path, pattern) or fnmatch.fnmatch(entry_point.openapi_path, pattern)
            for pattern in patterns
        )
