"""
Shared fixtures: a small sample application written to a temporary
directory, and factories for analysis contexts over it.
"""

import textwrap
from pathlib import Path
from typing import Dict

import pytest

from apidoc_infer.analysis.context import AnalysisContext
from apidoc_infer.analysis.entry_points import EntryPoint
from apidoc_infer.introspection.annotations import AnnotationReader
from apidoc_infer.introspection.source_index import SourceIndex
from apidoc_infer.mapper.validation_rules import ValidationRuleMapper
from apidoc_infer.plugins.registry import PluginRegistry
from apidoc_infer.schema.class_resolver import ClassSchemaResolver
from apidoc_infer.schema.registry import SchemaRegistry


MODELS_SOURCE = '''
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field


class Plan(str, Enum):
    MINI = "mini"
    PRO = "pro"
    ENTERPRISE = "enterprise"


@dataclass
class Address:
    street: str
    city: str
    zip_code: Optional[str] = None


@dataclass
class UserOut:
    """Public user representation"""
    id: int
    email: str
    plan: Plan
    address: Optional[Address] = None
    tags: List[str] = field(default_factory=list)


class CreateUserPayload(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=2, max_length=50, description="Display name")
    age: Optional[int] = Field(None, ge=18)


@dataclass
class TreeNode:
    value: int
    children: List["TreeNode"]


class StoreUserRequest:
    """Registration form"""
    rules = {"email": "required|email", "age": ["integer", "min:18"]}
'''


VIEWS_SOURCE = '''
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from flask import abort, jsonify, request

from app.auth import get_current_user
from app.models import CreateUserPayload, Plan, StoreUserRequest, UserOut
from apidoc_infer.decorators import exclude_from_docs, query_parameter, response_body, summary, tag

router = APIRouter()


@router.get("/users/{user_id}")
def get_user(user_id: int, include: Optional[str] = None, user=Depends(get_current_user)) -> UserOut:
    """Fetch one user.

    Returns the public representation.
    """
    found = repository.find(user_id)
    if found is None:
        raise HTTPException(status_code=404, detail="User not found")
    return found


@router.post("/users", status_code=201)
def create_user(payload: CreateUserPayload) -> UserOut:
    """Create a user"""
    return UserOut(id=1, email=payload.email, plan=Plan.MINI)


def store_user(request: StoreUserRequest):
    return {"id": 1, "email": request.email}, 201


def search():
    q = request.args["q"]
    page = request.args.get("page", 1, type=int)
    tags = request.args.getlist("tag")
    return jsonify(results=[], total=0)


def list_posts():
    return Post.query.paginate(per_page=20)


def register():
    data = validate(request.json, {"email": "required|email", "password": "required|string|min:8"})
    return {"message": "ok"}, 201


def delete_user(user_id: int) -> None:
    repository.delete(user_id)


def forbidden_action():
    abort(403)


@response_body(200, data_class="UserOut", description="All users", is_collection=True)
@query_parameter("include", type="string", enum=["posts", "comments"])
@summary("List users")
@tag("Accounts")
def list_users():
    return []


@exclude_from_docs
def hidden():
    return {}
'''


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def write_project(tmp_path):
    """Write `{relative path: source}` files under tmp_path and return the root"""

    def _write(files: Dict[str, str]) -> Path:
        for relative, content in files.items():
            path = tmp_path / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(textwrap.dedent(content), encoding="utf-8")
        return tmp_path

    return _write


@pytest.fixture
def sample_project(write_project):
    """Sample application with models and views"""
    return write_project({
        "app/__init__.py": "",
        "app/models.py": MODELS_SOURCE,
        "app/views.py": VIEWS_SOURCE,
    })


@pytest.fixture
def source_index(sample_project):
    return SourceIndex(sample_project)


@pytest.fixture
def schema_registry():
    return SchemaRegistry()


@pytest.fixture
def resolver(source_index, schema_registry):
    return ClassSchemaResolver(source_index, schema_registry)


@pytest.fixture
def make_context(source_index, resolver):
    """Build an AnalysisContext for a handler of the sample project"""

    def _make(
        handler: str,
        path: str = "/",
        method: str = "GET",
        middleware=None,
        annotations=None,
        captures=None,
        plugins=None,
    ) -> AnalysisContext:
        entry_point = EntryPoint(
            path=path,
            methods=[method],
            handler=handler,
            middleware=list(middleware or []),
            annotations=list(annotations or []),
        )
        module, func = source_index.find_handler(handler)
        return AnalysisContext(
            entry_point=entry_point,
            method=method,
            source_index=source_index,
            resolver=resolver,
            rule_mapper=ValidationRuleMapper(),
            handler=func,
            module=module,
            annotations=AnnotationReader().read(func, entry_point.annotations),
            plugins=plugins or PluginRegistry.with_defaults(),
            captures=captures,
        )

    return _make
