"""
Merge Module - Three-tier merge of extractor results.

Tiers: annotation > (static | capture, ordered by policy).
"""

from .example_merger import ExampleMerger
from .result_merger import MergePolicy, ResultMerger

__all__ = ["ExampleMerger", "MergePolicy", "ResultMerger"]
