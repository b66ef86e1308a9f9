"""
Forms module - Permission forms and parent submissions.
"""

# Imported so string relationships ("User", "School", "Student") resolve
from permission_please.modules.schools.models import School  # noqa: F401
from permission_please.modules.students.models import Student  # noqa: F401
from permission_please.modules.users.models import User  # noqa: F401

from permission_please.modules.forms.models import (
    FormStatus,
    FormSubmission,
    PermissionForm,
    SubmissionStatus,
)

__all__ = ["FormStatus", "FormSubmission", "PermissionForm", "SubmissionStatus"]
