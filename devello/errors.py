"""
Domain errors

Service functions raise these; ``create_app`` renders any of them as
``{"error": message}`` with the matching status code.
"""


class DevelloError(Exception):
    status_code = 500

    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.payload = payload or {}

    def to_dict(self):
        body = dict(self.payload)
        body["error"] = self.message
        return body


class ValidationError(DevelloError):
    status_code = 400


class AuthError(DevelloError):
    status_code = 401


class ForbiddenError(DevelloError):
    status_code = 403


class NotFoundError(DevelloError):
    status_code = 404


class QuotaExceededError(DevelloError):
    status_code = 403


class SessionExpiredError(DevelloError):
    status_code = 410


class InvalidTransitionError(DevelloError):
    status_code = 409


class PaymentError(DevelloError):
    """Stripe failures; the status code follows the Stripe error class"""
    status_code = 500
