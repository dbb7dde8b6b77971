"""Error kinds raised by the form workflow.

Each kind carries a stable ``code`` and default message so clients can render
actionable feedback, plus the HTTP status the API layer answers with.
"""

from __future__ import annotations

from fastapi import status


class WorkflowError(Exception):
    code = "workflow_error"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "The request could not be processed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class Forbidden(WorkflowError):
    code = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You do not have permission to perform this action"


class NotFound(WorkflowError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Form not found"


class InvalidTransition(WorkflowError):
    code = "invalid_transition"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "This action is not available for the form's current status"


class MissingReason(WorkflowError):
    code = "missing_reason"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "A reason is required to reject a form"


class InvalidMinistry(WorkflowError):
    code = "invalid_ministry"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid ministry"


class NumberGenerationFailed(WorkflowError):
    code = "number_generation_failed"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Failed to generate form number"


class StorageUnavailable(WorkflowError):
    code = "storage_unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "The database is unavailable, please retry"


class InvalidEventType(WorkflowError):
    code = "invalid_event_type"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid event type"
