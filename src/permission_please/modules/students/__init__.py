"""
Students module.
"""

from permission_please.modules.students.models import Student

__all__ = ["Student"]
