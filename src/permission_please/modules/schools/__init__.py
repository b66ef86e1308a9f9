"""
Schools module - School tenant management.
"""

from permission_please.modules.schools.models import School

__all__ = ["School"]
