"""
apidoc-infer - Static request/response schema inference for Python web applications.

Reads handler source trees, project type declarations, validation rule sets,
documentation annotations and optional runtime captures, and assembles an
OpenAPI-style document without importing the application.
"""

__version__ = "0.1.0"
