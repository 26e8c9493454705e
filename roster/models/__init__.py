from ..extensions import db
from .student import Student
from .user import User

__all__ = ["Student", "User"]
