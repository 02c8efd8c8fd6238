"""Custom exceptions for the restaurant shop backend."""

class ShopError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv

class ValidationError(ShopError):
    """Raised for malformed carts, amounts or discount codes."""
    def __init__(self, message, payload=None):
        super().__init__(message, 400, payload)

class NotFoundError(ShopError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)

class GatewayError(ShopError):
    """Payment provider unreachable or returned a malformed response."""
    def __init__(self, message="Payment provider unavailable", payload=None):
        super().__init__(message, 502, payload)

class PersistenceError(ShopError):
    """Storage failed during a required write; the transaction was rolled back."""
    def __init__(self, message="Could not save changes", payload=None):
        super().__init__(message, 500, payload)

class EmailError(ShopError):
    """SMTP or delivery failure. Never surfaces past the email service."""
    def __init__(self, message="Could not send email", payload=None):
        super().__init__(message, 500, payload)
