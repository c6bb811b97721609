"""Archive-status reconciliation engine.

Scanner → Classifier → Executor, sharing one run-scoped RunContext.
"""

from reconciliation.classifier import ItemClassifier, decide_action
from reconciliation.context import ReconcileConfig, RunContext
from reconciliation.errors import (
    MigrationError,
    NoReferenceFileError,
    PreconditionError,
    SizeConflictError,
    SizeMismatchError,
    SourceMissingError,
)
from reconciliation.executor import RemediationExecutor, summarize_classifications
from reconciliation.scanner import ContainerScanner, unique_candidates

__all__ = [
    "ContainerScanner",
    "ItemClassifier",
    "RemediationExecutor",
    "ReconcileConfig",
    "RunContext",
    "decide_action",
    "summarize_classifications",
    "unique_candidates",
    "PreconditionError",
    "MigrationError",
    "NoReferenceFileError",
    "SourceMissingError",
    "SizeMismatchError",
    "SizeConflictError",
]
