"""Workspace discovery for twm.

A workspace is any directory matching one of the configured workspace
definitions. Definitions are checked in order and the first match wins.
"""

from .conditions import (
    Condition,
    ConditionKind,
    WorkspaceDefinition,
    find_workspace_definition,
    get_workspace_type,
    meets,
    meets_condition,
)
from .scanner import WorkspaceScanner, find_workspaces

__all__ = [
    "Condition",
    "ConditionKind",
    "WorkspaceDefinition",
    "WorkspaceScanner",
    "find_workspace_definition",
    "find_workspaces",
    "get_workspace_type",
    "meets",
    "meets_condition",
]
