"""Restore orchestration: dry-run gate, container tracking and the pipeline."""

from .gate import ExecutionGate
from .pipeline import RestorePipeline, find_compose_files
from .workloads import WorkloadTracker

__all__ = [
    "ExecutionGate",
    "RestorePipeline",
    "WorkloadTracker",
    "find_compose_files",
]
