"""
Captured Response Repository - Reads and writes runtime-observed payloads.

Storage layout: one JSON file per (method, path) under the storage directory,
named `<method>_<path>.json`, holding one entry per status code:

    {
      "200": {
        "schema": {...},
        "example": {...},
        "captured_at": "2025-01-15T10:30:00",
        "request": {"body_schema": {...}, "body": {...},
                    "query_schema": {...}, "query_parameters": {...}}
      }
    }
"""

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from apidoc_infer.schema.models import SchemaObject

logger = logging.getLogger(__name__)


@dataclass
class CapturedRequest:
    """Request side of a captured exchange"""
    body_schema: Optional[SchemaObject] = None
    body: Any = None
    query_schema: Optional[SchemaObject] = None
    query_parameters: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CapturedRequest":
        body_schema = data.get("body_schema")
        query_schema = data.get("query_schema")
        query = data.get("query_parameters")
        return cls(
            body_schema=SchemaObject.from_dict(body_schema) if isinstance(body_schema, dict) else None,
            body=data.get("body"),
            query_schema=SchemaObject.from_dict(query_schema) if isinstance(query_schema, dict) else None,
            query_parameters=dict(query) if isinstance(query, dict) else {},
        )


@dataclass
class CapturedResponse:
    """One observed response for a status code"""
    status_code: int
    schema: Optional[SchemaObject] = None
    example: Any = None
    captured_at: Optional[str] = None
    request: Optional[CapturedRequest] = None

    @classmethod
    def from_dict(cls, status_code: int, data: Dict[str, Any]) -> "CapturedResponse":
        schema = data.get("schema")
        request = data.get("request")
        return cls(
            status_code=status_code,
            schema=SchemaObject.from_dict(schema) if isinstance(schema, dict) else None,
            example=data.get("example"),
            captured_at=data.get("captured_at"),
            request=CapturedRequest.from_dict(request) if isinstance(request, dict) else None,
        )


class CapturedResponseRepository:
    """
    File-backed store of runtime captures

    Usage:
    ```python
    repo = CapturedResponseRepository(Path(".apidoc/captures"))
    captures = repo.get_captures("GET", "/users/{id}")
    for status, capture in captures.items():
        print(status, capture.example)
    ```
    """

    def __init__(self, storage_path: Path):
        self.storage_path = Path(storage_path)
        self._cache: Dict[str, Dict[int, CapturedResponse]] = {}

    @staticmethod
    def file_name(method: str, uri: str) -> str:
        """`GET /api/users/{id}` -> `get_api_users_id.json`"""
        path = re.sub(r"\{([^}:]+)[^}]*\}", r"\1", uri)
        path = re.sub(r"<(?:[^:>]+:)?([^>]+)>", r"\1", path)
        path = re.sub(r"[/.:\-]+", "_", path).strip("_")
        return f"{method.lower()}_{path or 'root'}.json"

    def get_captures(self, method: str, uri: str) -> Dict[int, CapturedResponse]:
        """All captured responses for an operation, keyed by status code"""
        name = self.file_name(method, uri)
        if name not in self._cache:
            self._cache[name] = self._load(self.storage_path / name)
        return self._cache[name]

    def get_capture(self, method: str, uri: str, status_code: int) -> Optional[CapturedResponse]:
        return self.get_captures(method, uri).get(status_code)

    def has_captures(self, method: str, uri: str) -> bool:
        return bool(self.get_captures(method, uri))

    def save_capture(
        self,
        method: str,
        uri: str,
        status_code: int,
        schema: Optional[Dict[str, Any]],
        example: Any,
        request: Optional[Dict[str, Any]] = None,
    ) -> Path:
        """Write (or replace) one status entry for an operation"""
        self.storage_path.mkdir(parents=True, exist_ok=True)
        path = self.storage_path / self.file_name(method, uri)
        data = self._read_json(path)
        entry: Dict[str, Any] = {
            "schema": schema,
            "example": example,
            "captured_at": datetime.now().isoformat(timespec="seconds"),
        }
        if request is not None:
            entry["request"] = request
        data[str(status_code)] = entry
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, default=str)
        self._cache.pop(path.name, None)
        return path

    def get_statistics(self) -> Dict[str, Any]:
        """Counts of capture files and responses by method and status"""
        by_method: Dict[str, int] = {}
        by_status: Dict[str, int] = {}
        total_responses = 0
        files = self._files()
        for path in files:
            method = path.stem.split("_", 1)[0].upper()
            data = self._read_json(path)
            by_method[method] = by_method.get(method, 0) + 1
            for status in data:
                by_status[status] = by_status.get(status, 0) + 1
                total_responses += 1
        return {
            "storage_path": str(self.storage_path),
            "total_files": len(files),
            "total_responses": total_responses,
            "by_method": by_method,
            "by_status": by_status,
        }

    def clear(self) -> int:
        """Delete every capture file; returns how many were removed"""
        files = self._files()
        for path in files:
            path.unlink()
        self._cache.clear()
        return len(files)

    def _files(self) -> List[Path]:
        if not self.storage_path.is_dir():
            return []
        return sorted(self.storage_path.glob("*.json"))

    def _load(self, path: Path) -> Dict[int, CapturedResponse]:
        captures: Dict[int, CapturedResponse] = {}
        for status, entry in self._read_json(path).items():
            try:
                status_code = int(status)
            except ValueError:
                logger.debug(f"Skipping non-numeric status '{status}' in {path}")
                continue
            if isinstance(entry, dict):
                captures[status_code] = CapturedResponse.from_dict(status_code, entry)
        return dict(sorted(captures.items()))

    @staticmethod
    def _read_json(path: Path) -> Dict[str, Any]:
        if not path.exists():
            return {}
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Unreadable capture file {path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}
