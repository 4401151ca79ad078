"""
Documentation decorators for application handlers.

They attach metadata to the function at import time and otherwise leave it
untouched; the analyzer reads the same decorators statically from source.

Usage:
```python
from apidoc_infer.decorators import query_parameter, response_body

@response_body(200, data_class=UserOut, description="The user")
@query_parameter("include", type="string", enum=["posts", "comments"])
def get_user(user_id: int): ...
```
"""

from typing import Any, Callable, List

from apidoc_infer.introspection.annotations import ANNOTATION_PARAMETERS

METADATA_ATTRIBUTE = "__apidoc__"


def _annotation_factory(kind: str) -> Callable[..., Callable]:
    positional: List[str] = ANNOTATION_PARAMETERS[kind]

    def factory(*args: Any, **kwargs: Any) -> Callable:
        values = dict(zip(positional, args))
        values.update(kwargs)

        def decorator(func: Callable) -> Callable:
            func.__dict__.setdefault(METADATA_ATTRIBUTE, []).append({"annotation": kind, **values})
            return func

        return decorator

    factory.__name__ = kind
    return factory


request_body = _annotation_factory("request_body")
body_parameter = _annotation_factory("body_parameter")
response_body = _annotation_factory("response_body")
response_header = _annotation_factory("response_header")
data_response = _annotation_factory("data_response")
query_parameter = _annotation_factory("query_parameter")
path_parameter = _annotation_factory("path_parameter")
summary = _annotation_factory("summary")
description = _annotation_factory("description")
tag = _annotation_factory("tag")


def exclude_from_docs(func: Callable) -> Callable:
    func.__dict__.setdefault(METADATA_ATTRIBUTE, []).append({"annotation": "exclude_from_docs"})
    return func
