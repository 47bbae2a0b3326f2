"""Models package: import all models so metadata.create_all can discover them."""

from user_admin.models.role import Role, RoleName
from user_admin.models.user_role import UserRole
from user_admin.models.user import User
from user_admin.models.team import Team, TeamRequest, TeamRequestStatus
from user_admin.models.audit_log import AuditLog

__all__ = [
    "Role", "RoleName", "UserRole", "User",
    "Team", "TeamRequest", "TeamRequestStatus",
    "AuditLog",
]
