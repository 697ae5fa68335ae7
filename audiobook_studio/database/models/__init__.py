"""SQLAlchemy models; importing this package registers them with Base.metadata."""

from .artifact import ArtifactVersionModel
from .command_log import CommandLogModel
from .dictionary import MasterDictionaryEntryModel
from .notification import SystemNotificationModel
from .project import ProjectModel
from .user import UserProfileModel

__all__ = [
    "ArtifactVersionModel",
    "CommandLogModel",
    "MasterDictionaryEntryModel",
    "ProjectModel",
    "SystemNotificationModel",
    "UserProfileModel",
]
