from app.models.user import User
from app.models.repository import Repository

__all__ = [
    "User",
    "Repository",
]
