from readlater.models.base import Base
from readlater.models.group import Group
from readlater.models.highlight import Highlight
from readlater.models.label import EntityLabel, Label
from readlater.models.library_item import LibraryItem
from readlater.models.recommendation import Recommendation
from readlater.models.user import User, UserProfile


__all__ = [
    "Base",
    "User",
    "UserProfile",
    "Group",
    "LibraryItem",
    "Label",
    "EntityLabel",
    "Highlight",
    "Recommendation",
]
