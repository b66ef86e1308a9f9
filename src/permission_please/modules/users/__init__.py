"""
Users module - Teachers, parents, reviewers and administrators.
"""

from permission_please.modules.users.models import User, UserRole

__all__ = ["User", "UserRole"]
