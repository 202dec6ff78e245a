from .student import Student, StudentStatus
from .user import User, UserRole, LoginType
