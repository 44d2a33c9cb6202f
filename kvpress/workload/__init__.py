"""Workload engine: operation catalog, key synthesis and the key corpus."""

from .corpus import KeyCorpus, join_record, split_record
from .operations import CATALOG, OperationDescriptor, WorkloadContext, lookup, operation_names

__all__ = [
    "CATALOG",
    "KeyCorpus",
    "OperationDescriptor",
    "WorkloadContext",
    "join_record",
    "lookup",
    "operation_names",
    "split_record",
]
