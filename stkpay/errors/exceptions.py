class AppError(Exception):
    status_code = 500
    error = "Application error"

    def __init__(self, message, status_code=None, details=None):
        super().__init__(message)
        if status_code:
            self.status_code = status_code
        self.message = message
        self.details = details

    def to_dict(self):
        return {
            'success': False,
            'error': self.error,
            'message': self.message,
            'details': self.details,
        }


class ValidationError(AppError):
    status_code = 400
    error = "Validation error"

class PaymentNotFound(AppError):
    status_code = 404
    error = "Payment not found"

class ConflictError(AppError):
    status_code = 409
    error = "Conflict"

class MalformedCallbackError(AppError):
    status_code = 400
    error = "Malformed callback"

class PersistenceError(AppError):
    status_code = 500
    error = "Persistence error"

class UpstreamError(AppError):
    status_code = 502
    error = "Upstream error"

class UpstreamAuthError(UpstreamError):
    error = "Upstream authentication failed"

class UpstreamGatewayError(UpstreamError):
    error = "Upstream gateway error"


class ConfigurationError(RuntimeError):
    """Raised at startup when required settings are missing"""
    pass
