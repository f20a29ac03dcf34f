"""
Change Tracker

Reduces field edits into a validated change-set that can be shown in a UI
and later sent as a PATCH payload.

Every edit ends in one of three states:
- INVALID: the validator rejected the value, its message is recorded
- CHANGED: the value is valid and differs from the original
- UNCHANGED: the value is valid and equal to the original; any earlier
  change or error for the field is cleared

The reducer keeps no state of its own; the change-set is threaded through
calls and a new one is returned each time.
"""

import logging
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple

from pydantic import BaseModel, Field

from wgmesh.networking.field_validator import (
    CompositeField,
    StringField,
    ToggleField,
    ValidationResult,
    to_plain,
)

logger = logging.getLogger(__name__)


class FieldState(str, Enum):
    """Outcome of a tracked edit"""
    UNCHANGED = "unchanged"
    CHANGED = "changed"
    INVALID = "invalid"


class FieldHighlight(str, Enum):
    """Presentation-agnostic highlight a UI maps to its own styling"""
    PLAIN = "plain"
    ADDED = "added"
    MODIFIED = "modified"
    INVALID = "invalid"


def field_highlights(is_new: bool) -> Dict[FieldState, FieldHighlight]:
    """
    Highlight table for a peer or connection form

    Args:
        is_new: True while the item is being created rather than edited

    Returns:
        FieldState -> FieldHighlight
    """
    return {
        FieldState.UNCHANGED: FieldHighlight.ADDED if is_new else FieldHighlight.PLAIN,
        FieldState.CHANGED: FieldHighlight.ADDED if is_new else FieldHighlight.MODIFIED,
        FieldState.INVALID: FieldHighlight.INVALID,
    }


class ChangeSet(BaseModel):
    """
    Pending edits of one peer or connection

    A ``None`` entry is an explicit clear: the field has reverted to its
    original value or its error has been resolved.

    Attributes:
        errors: Field -> error message or None
        changed_fields: Field -> new value or None
    """
    errors: Dict[str, Optional[str]] = Field(default_factory=dict)
    changed_fields: Dict[str, Any] = Field(default_factory=dict)

    def has_errors(self) -> bool:
        return any(message is not None for message in self.errors.values())

    def pending_changes(self) -> Dict[str, Any]:
        """Changed fields with explicit clears dropped"""
        return {
            field: value
            for field, value in self.changed_fields.items()
            if value is not None
        }


def _plain(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (StringField, ToggleField, CompositeField)):
        return to_plain(value)
    if isinstance(value, Enum):
        return value.value
    return value


def track_edit(
    field_name: str,
    validator: Callable[..., ValidationResult],
    original_value: Any,
    change_set: ChangeSet,
    *validator_args: Any,
) -> Tuple[FieldState, ChangeSet]:
    """
    Validate an edit and fold it into a change-set

    Args:
        field_name: Key the edit is recorded under
        validator: Callable returning a ValidationResult
        original_value: Committed value of the field
        change_set: Current change-set, left untouched
        *validator_args: Passed to ``validator``

    Returns:
        (state, new change-set)
    """
    result = validator(*validator_args)
    errors = dict(change_set.errors)
    changed_fields = dict(change_set.changed_fields)

    if not result.status:
        errors[field_name] = result.message
        state = FieldState.INVALID
    elif _plain(result.value) != _plain(original_value):
        changed_fields[field_name] = result.value
        errors[field_name] = None
        state = FieldState.CHANGED
    else:
        changed_fields[field_name] = None
        errors[field_name] = None
        state = FieldState.UNCHANGED

    logger.debug(f"Edit of {field_name} tracked as {state.value}")
    return state, ChangeSet(errors=errors, changed_fields=changed_fields)


def apply_edit(
    field_name: str,
    validator: Callable[..., ValidationResult],
    original_value: Any,
    change_set: ChangeSet,
    highlights: Dict[FieldState, FieldHighlight],
    *validator_args: Any,
) -> Tuple[FieldHighlight, ChangeSet]:
    """
    track_edit, with the state mapped through a highlight table

    Returns:
        (highlight, new change-set)
    """
    state, new_change_set = track_edit(
        field_name, validator, original_value, change_set, *validator_args
    )
    return highlights[state], new_change_set
