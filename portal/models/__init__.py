"""ORM model exports."""

from portal.models.academics import Batch, Note, Paper, Section
from portal.models.audit_event import AuditEvent
from portal.models.gallery import GalleryCategory, GalleryImage
from portal.models.notice import DEFAULT_CATEGORY_COLOR, Notice, NoticeCategory
from portal.models.session import UserSession
from portal.models.user import User

__all__ = [
    "DEFAULT_CATEGORY_COLOR",
    "AuditEvent",
    "Batch",
    "GalleryCategory",
    "GalleryImage",
    "Note",
    "Notice",
    "NoticeCategory",
    "Paper",
    "Section",
    "User",
    "UserSession",
]
