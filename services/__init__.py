"""
Services - storage backends for the workflow engine.
"""

from .workflow_store import (
    WorkflowStore,
    InMemoryWorkflowStore,
    DatabaseWorkflowStore,
    create_workflow_store,
)

__all__ = [
    "WorkflowStore",
    "InMemoryWorkflowStore",
    "DatabaseWorkflowStore",
    "create_workflow_store",
]
