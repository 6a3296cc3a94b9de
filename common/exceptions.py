class ClinicError(Exception):
    """
    Base class for domain errors raised by the scheduling and health card services.
    Carries the offending field and the current state of the object, when known,
    so the caller can build a user-facing message.
    """
    code = 'error'

    def __init__(self, message, field=None, current_state=None):
        super().__init__(message)
        self.message = message
        self.field = field
        self.current_state = current_state

    def as_dict(self):
        data = {'error': self.message, 'code': self.code}
        if self.field is not None:
            data['field'] = self.field
        if self.current_state is not None:
            data['current_state'] = self.current_state
        return data


class ValidationError(ClinicError):
    """Malformed or missing input."""
    code = 'validation_error'


class ConflictError(ClinicError):
    """A uniqueness or state invariant would be violated."""
    code = 'conflict'


class NotFoundError(ClinicError):
    code = 'not_found'


class AuthorizationError(ClinicError):
    """The acting user's role does not permit the operation."""
    code = 'forbidden'
