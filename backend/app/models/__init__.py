"""
FossFLOW Database Models
Exports all models for use throughout the application.
"""

from app.models.user import User
from app.models.api_key import ApiKey
from app.models.audit_log import AuditLog
from app.models.diagram import Diagram, DiagramTag, DiagramVersion

__all__ = [
    "User",
    "ApiKey",
    "AuditLog",
    "Diagram",
    "DiagramTag",
    "DiagramVersion",
]
