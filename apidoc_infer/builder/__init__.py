"""
Document Builder Module

Assembles the inferred document:
- ExampleGenerator: synthetic examples for schema leaves
- OperationBuilder: one operation from merged extractor results
- DocumentBuilder: a full run over a list of entry points
"""

from .example_generator import ExampleGenerator
from .operation_builder import OperationBuilder
from .document_builder import DocumentBuilder

__all__ = [
    "ExampleGenerator",
    "OperationBuilder",
    "DocumentBuilder",
]
