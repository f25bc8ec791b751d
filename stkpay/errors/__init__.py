from stkpay.errors.exceptions import (
    AppError,
    ConfigurationError,
    ConflictError,
    MalformedCallbackError,
    PaymentNotFound,
    PersistenceError,
    UpstreamAuthError,
    UpstreamError,
    UpstreamGatewayError,
    ValidationError,
)

__all__= [
    'AppError',
    'ConfigurationError',
    'ConflictError',
    'MalformedCallbackError',
    'PaymentNotFound',
    'PersistenceError',
    'UpstreamAuthError',
    'UpstreamError',
    'UpstreamGatewayError',
    'ValidationError',
]
