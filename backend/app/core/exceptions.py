class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

class ResourceNotFoundError(AppError):
    """Raised when a requested resource is absent or outside the caller's department."""
    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} with id {resource_id} not found",
            status_code=404,
            details={"error": "not_found", "resource": resource_type, "id": resource_id},
        )

class InvalidArgumentError(AppError):
    """Raised when a required field is missing or malformed."""
    def __init__(self, message: str, field: str | None = None):
        super().__init__(message, status_code=400, details={"error": "invalid_argument", "field": field})

class ConflictError(AppError):
    """Raised when a write collides with an existing record."""
    def __init__(self, kind: str, message: str):
        self.kind = kind
        super().__init__(message, status_code=409, details={"error": "conflict", "kind": kind})

class SlotConflictError(ConflictError):
    """Raised when a slot write would double-book a faculty member, a room or a subject."""

class AlreadyResolvedError(AppError):
    """Raised when a notification has already left the pending state."""
    def __init__(self, notification_id: str, status: str):
        super().__init__(
            "This notification has already been responded to",
            status_code=409,
            details={"error": "already_resolved", "id": notification_id, "status": status},
        )

class AuthorizationError(AppError):
    """Raised when the caller lacks the capability required by an operation."""
    def __init__(self, message: str = "Only timetable incharge can access this resource"):
        super().__init__(message, status_code=403, details={"error": "authorization"})

class PendingApprovalsError(AppError):
    """Raised when a timetable still has proposals awaiting a faculty response."""
    def __init__(self, count: int):
        self.count = count
        super().__init__(
            f"Cannot publish: {count} assignments are still pending approval",
            status_code=409,
            details={"error": "pending_approvals", "count": count},
        )
