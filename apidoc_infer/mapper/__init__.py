"""
Mapper Module - Source-level type information to schemas.

- TypeMapper: annotation syntax trees (Optional, Union, List, Dict, Literal, ...)
- ValidationRuleMapper: pipe-delimited validation rule sets
"""

from .type_mapper import TypeMapper
from .validation_rules import ValidationRuleMapper

__all__ = ["TypeMapper", "ValidationRuleMapper"]
