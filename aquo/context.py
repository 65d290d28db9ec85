"""
===============================================================================
CRC CARD - aquo/context.py (Per-operation context)
===============================================================================

Responsibilities:
  - Keep "operation-scoped" context using ContextVars (async-safe).
  - Correlate log lines of one mutate-then-reconcile cycle without threading
    ids through every call.
  - Provide minimal helpers: set_operation_context(), get_context_dict(),
    clear_context().

Collaborators:
  - aquo.application.synchronizer: sets operation_id/resource/action.
  - aquo.crosscutting.logger: enriches log records via get_context_dict().

Constraints:
  - Only primitive strings, so JSON serialization is always safe.
  - Empty string defaults ("") mean "not available".
===============================================================================
"""

from __future__ import annotations

from contextvars import ContextVar
from typing import Final

# Identifier of the current mutate/reconcile cycle.
operation_id_var: ContextVar[str] = ContextVar("operation_id", default="")

# Resource kind ("site" / "user") and action ("create", "delete", ...).
resource_var: ContextVar[str] = ContextVar("resource", default="")
action_var: ContextVar[str] = ContextVar("action", default="")

# Keys used in the resulting dict.
_CTX_OPERATION_ID: Final[str] = "operation_id"
_CTX_RESOURCE: Final[str] = "resource"
_CTX_ACTION: Final[str] = "action"


def set_operation_context(
    *, operation_id: str = "", resource: str = "", action: str = ""
) -> None:
    """Sets the context of the operation running in the current task."""
    operation_id_var.set(operation_id or "")
    resource_var.set(resource or "")
    action_var.set(action or "")


def get_context_dict() -> dict[str, str]:
    """Returns the current context as a dict, skipping empty values."""
    ctx: dict[str, str] = {}

    if val := operation_id_var.get():
        ctx[_CTX_OPERATION_ID] = val
    if val := resource_var.get():
        ctx[_CTX_RESOURCE] = val
    if val := action_var.get():
        ctx[_CTX_ACTION] = val

    return ctx


def clear_context() -> None:
    """
    Clears the context at the end of an operation.

    Prevents context from leaking into the next operation of the same task.
    """
    operation_id_var.set("")
    resource_var.set("")
    action_var.set("")
