"""Application exceptions.

Each exception carries the HTTP status it is rendered with; the handlers
registered in ``student_records.main`` turn them into
``{"success": false, "message": ...}`` responses.
"""


class StudentRecordsError(Exception):
    """Base exception for all student records errors."""

    status_code = 500
    default_message = "Server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(StudentRecordsError):
    """Raised when client input is missing or malformed."""

    status_code = 400
    default_message = "All fields are required."


class ConflictError(StudentRecordsError):
    """Raised when a unique constraint would be violated."""

    status_code = 409
    default_message = "Resource already exists."


class DuplicateStudentNumberError(ConflictError):
    """Raised when another student already holds the student number."""

    default_message = "Student number already exists."

    def __init__(self, student_number: str):
        self.student_number = student_number
        super().__init__()


class UsernameTakenError(ConflictError):
    """Raised on registration with a username that is already in use."""

    # Legacy contract: reported as 200 with success false
    status_code = 200
    default_message = "Username already exists."


class NotFoundError(StudentRecordsError):
    status_code = 404
    default_message = "Not found"


class StudentNotFoundError(NotFoundError):
    """Raised when no student row has the requested id."""

    default_message = "Student not found"

    def __init__(self, student_id: int | None = None, message: str | None = None):
        self.student_id = student_id
        super().__init__(message)


class AuthRejectedError(StudentRecordsError):
    """Raised when manual credentials do not match a stored account."""

    # Legacy contract: reported as 200 with success false
    status_code = 200
    default_message = "Invalid username or password."


class FederatedLoginError(StudentRecordsError):
    """Raised when an identity provider token cannot be verified."""

    status_code = 500
    default_message = "Google login failed."


class NotAuthenticatedError(StudentRecordsError):
    status_code = 401
    default_message = "Could not validate credentials"


class ForbiddenError(StudentRecordsError):
    status_code = 403
    default_message = "You do not have access to this resource."
