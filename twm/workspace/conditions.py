"""File-presence rules that decide whether a directory is a workspace."""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Sequence, Tuple


class ConditionKind(Enum):
    """Closed set of rules a workspace definition can use."""

    HAS_ANY_FILE = "has_any_file"
    HAS_ALL_FILES = "has_all_files"
    MISSING_ANY_FILE = "missing_any_file"
    MISSING_ALL_FILES = "missing_all_files"
    NULL = "null"


@dataclass(frozen=True)
class Condition:
    """A single file-presence rule.

    ``files`` are names relative to the directory being tested. The ``NULL``
    kind ignores ``files`` and always holds.
    """

    kind: ConditionKind
    files: Tuple[str, ...] = ()

    @classmethod
    def has_any_file(cls, files: Iterable[str]) -> "Condition":
        return cls(ConditionKind.HAS_ANY_FILE, tuple(files))

    @classmethod
    def has_all_files(cls, files: Iterable[str]) -> "Condition":
        return cls(ConditionKind.HAS_ALL_FILES, tuple(files))

    @classmethod
    def missing_any_file(cls, files: Iterable[str]) -> "Condition":
        return cls(ConditionKind.MISSING_ANY_FILE, tuple(files))

    @classmethod
    def missing_all_files(cls, files: Iterable[str]) -> "Condition":
        return cls(ConditionKind.MISSING_ALL_FILES, tuple(files))

    @classmethod
    def null(cls) -> "Condition":
        return cls(ConditionKind.NULL)


@dataclass(frozen=True)
class WorkspaceDefinition:
    """A named workspace type.

    All conditions must hold for a directory to be this type of workspace.
    """

    name: str
    conditions: Tuple[Condition, ...] = field(default_factory=lambda: (Condition.null(),))
    default_layout: Optional[str] = None


def _exists(directory: str, name: str) -> bool:
    return os.path.exists(os.path.join(directory, name))


def meets_condition(condition: Condition, directory: str) -> bool:
    """Evaluate one condition against a directory.

    Args:
        condition: Rule to evaluate
        directory: Directory whose entries are checked

    Returns:
        True if the rule holds for the directory
    """
    kind = condition.kind
    if kind is ConditionKind.NULL:
        return True
    if kind is ConditionKind.HAS_ANY_FILE:
        return any(_exists(directory, f) for f in condition.files)
    if kind is ConditionKind.HAS_ALL_FILES:
        return all(_exists(directory, f) for f in condition.files)
    if kind is ConditionKind.MISSING_ANY_FILE:
        return any(not _exists(directory, f) for f in condition.files)
    if kind is ConditionKind.MISSING_ALL_FILES:
        return not any(_exists(directory, f) for f in condition.files)
    raise ValueError(f"Unknown condition kind: {kind}")


def meets(conditions: Sequence[Condition], directory: str) -> bool:
    """Check whether every condition holds for a directory.

    Evaluation stops at the first failing condition.
    """
    return all(meets_condition(c, directory) for c in conditions)


def get_workspace_type(directory: str, definitions: Sequence[WorkspaceDefinition]) -> Optional[str]:
    """Get the name of the first definition that matches a directory.

    Args:
        directory: Directory to classify
        definitions: Workspace definitions in priority order

    Returns:
        Name of the matching definition, or None if nothing matches
    """
    definition = find_workspace_definition(directory, definitions)
    return definition.name if definition else None


def find_workspace_definition(
    directory: str, definitions: Sequence[WorkspaceDefinition]
) -> Optional[WorkspaceDefinition]:
    for definition in definitions:
        if meets(definition.conditions, directory):
            return definition
    return None
