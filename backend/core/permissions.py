from rest_framework.permissions import BasePermission


class _RolePermission(BasePermission):
    allowed_roles: set[str] = set()
    message = "Your account role is not permitted to perform this action."

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        if user.is_superuser:
            return True
        return user.role in self.allowed_roles


class IsStudent(_RolePermission):
    allowed_roles = {"student"}
    message = "Only students can perform this action."


class IsAgent(_RolePermission):
    allowed_roles = {"agent"}
    message = "Only agents can perform this action."


class IsAgentOrAdmin(_RolePermission):
    allowed_roles = {"agent", "admin"}


class IsAdmin(_RolePermission):
    allowed_roles = {"admin"}
    message = "Only administrators can perform this action."
