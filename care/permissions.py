"""
Role based permission classes.

Each class compares the authenticated caller's role to the role (or set
of roles) a route requires.  DRF evaluates them before the view body, so
a rejected caller never reaches the record store.
"""
from rest_framework.permissions import BasePermission


def _role(request):
    user = getattr(request, "user", None)
    if not (user and user.is_authenticated):
        return None
    return getattr(user, "role", None)


class IsAdminRole(BasePermission):
    """Allow access only to users with the admin role."""
    message = "Access denied: Admin privileges required"

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) == "admin"


class IsPatientRole(BasePermission):
    """Allow access only to users with the patient role."""
    message = "Access denied: Patient account required"

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) == "patient"


class IsDoctorRole(BasePermission):
    """Allow access only to users with the doctor role."""
    message = "Access denied: Doctor privileges required"

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) == "doctor"


def HasAnyRole(*roles: str):
    """Build a permission class admitting any of ``roles``."""

    class _HasAnyRole(BasePermission):
        message = "Not authorized for this action"

        def has_permission(self, request, view) -> bool:
            return _role(request) in roles

    _HasAnyRole.__name__ = "HasAnyRole_" + "_".join(roles)
    return _HasAnyRole
