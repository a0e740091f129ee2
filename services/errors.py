"""Service-layer errors and the HTTP status each one maps to."""


class ServiceError(Exception):
    status_code = 500

    def __init__(self, message, **extra):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self):
        payload = {'error': self.message}
        payload.update(self.extra)
        return payload


class ValidationError(ServiceError):
    status_code = 400


class UnauthenticatedError(ServiceError):
    status_code = 401


class ForbiddenError(ServiceError):
    status_code = 403


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    status_code = 409
