"""
Domain errors raised by the assembly services.

Every error carries the HTTP status the API layer answers with and a short
machine-readable code; the message names the precondition that failed.
"""


class AssemblyError(Exception):
    """Base class for all assembly engine errors"""

    status_code = 400
    code = "ASSEMBLY_ERROR"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class NotFoundError(AssemblyError):
    """Missing assembly, agenda item, participant, unit or token"""

    status_code = 404
    code = "NOT_FOUND"


class InvalidStateError(AssemblyError):
    """Illegal state transition or failed precondition"""

    status_code = 400
    code = "INVALID_STATE"


class ConflictError(AssemblyError):
    """Duplicate vote, duplicate check-in while present, duplicate unit"""

    status_code = 409
    code = "CONFLICT"


class UnauthorizedError(AssemblyError):
    """Bad or expired OTP, invalid session"""

    status_code = 401
    code = "UNAUTHORIZED"


class ForbiddenError(AssemblyError):
    """Caller lacks the role or tenant scope for the operation"""

    status_code = 403
    code = "FORBIDDEN"


class ValidationFailedError(AssemblyError):
    """Input rejected before any state was touched"""

    status_code = 400
    code = "VALIDATION_ERROR"
