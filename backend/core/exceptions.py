"""Error taxonomy shared by the course-access and distribution services.

Services raise these; the REST layer maps them to HTTP responses through
``core.handlers.custom_exception_handler``.
"""


class WorkflowError(Exception):
    status_code = 400
    code = 'error'

    def __init__(self, message: str = '', **details):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(WorkflowError):
    """Malformed or missing input. Nothing was written."""
    status_code = 400
    code = 'validation_error'


class AuthorizationError(WorkflowError):
    status_code = 403
    code = 'authorization_error'


class NotFoundError(WorkflowError):
    status_code = 404
    code = 'not_found'


class ConflictError(WorkflowError):
    """Duplicate pending request or a response to an already resolved one."""
    status_code = 409
    code = 'conflict'


class DegradedIntegrationFailure(WorkflowError):
    """Raised inside integrations (storage, notifications) and always caught.

    Callers of the core operations never see this; it is logged and the
    primary state transition proceeds.
    """
    code = 'degraded_integration'
