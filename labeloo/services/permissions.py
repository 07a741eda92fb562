"""Authorization gate consulted before task writes, uploads, and exports.

Role and permission management live outside this service; here the gate
is only a yes/no question keyed by caller, project, and action name.
"""

from __future__ import annotations

from typing import Protocol

# Action names passed to PermissionGate.may_perform
MANAGE_TASKS = "manage_tasks"
UPLOAD_DATA = "upload_data"
EXPORT_DATA = "export_data"
CREATE_ANNOTATIONS = "create_annotations"


class PermissionGate(Protocol):
    """Answers whether *user_id* may perform *action* within project *scope_id*."""

    def may_perform(self, user_id: int, scope_id: int | None, action: str) -> bool:
        ...


class AllowAllPermissionGate:
    """Default gate: every authenticated caller may do everything."""

    def may_perform(self, user_id: int, scope_id: int | None, action: str) -> bool:
        return True
