"""Custom exception classes for the application."""

class BaseAutograderException(Exception):
    """Base exception for all application-specific errors."""
    pass

class ConfigError(BaseAutograderException):
    """Error related to configuration loading or values."""
    pass

class AuthenticationError(BaseAutograderException):
    """Error during the password sign-in exchange."""
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code

class NotAuthenticatedError(AuthenticationError):
    """Raised when an operation needs a credential or identity the session does not hold."""
    pass

class APIError(BaseAutograderException):
    """Error interacting with an external API (REST, storage, auth, app)."""
    def __init__(self, message: str, status_code: int | None = None, service: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.service = service

    def __str__(self) -> str:
        base = super().__str__()
        details = []
        if self.service:
            details.append(f"Service: {self.service}")
        if self.status_code:
            details.append(f"Status Code: {self.status_code}")
        if details:
            return f"{base} ({', '.join(details)})"
        return base

class NetworkError(APIError):
    """The request never produced an HTTP response (connection refused, timeout, DNS)."""
    pass

class QueryBuildError(BaseAutograderException, ValueError):
    """A REST query or projection could not be constructed."""
    pass

class ContractError(BaseAutograderException):
    """The caller referenced something that does not exist or does not belong together."""
    pass

class ClassNotFoundError(ContractError):
    """No class exists with the requested id."""
    pass

class AssignmentNotInClassError(ContractError):
    """The requested assignment is not part of the requested class."""
    def __init__(self, assignment_id: str, class_id: str):
        super().__init__(f"Assignment '{assignment_id}' not in Class '{class_id}'.")
        self.assignment_id = assignment_id
        self.class_id = class_id

class ProfileNotFoundError(ContractError):
    """No profile exists with the requested id."""
    pass

class SubmissionNotFoundError(ContractError):
    """No submission matches the requested profile, assignment, version and file name."""
    pass

class UserCancelledError(BaseAutograderException):
    """Error raised when the user cancels an operation."""
    pass
