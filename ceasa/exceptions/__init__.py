"""Custom exceptions for the CEASA back-office."""


class CeasaError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="Erro interno do servidor", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv


class ValidationError(CeasaError):
    """Raised for wrong-status transitions, malformed payloads and business rule violations."""
    def __init__(self, message="Dados inválidos", status_code=400, payload=None):
        super().__init__(message, status_code, payload)


class NotFoundError(CeasaError):
    """Raised when a resource does not exist within the caller's tenant."""
    def __init__(self, message="Recurso não encontrado", payload=None):
        super().__init__(message, 404, payload)


class ConflictError(CeasaError):
    """Raised when the store rejects a write because of a uniqueness constraint."""
    def __init__(self, message="Conflito de dados", payload=None):
        super().__init__(message, 409, payload)


class ForbiddenError(CeasaError):
    """Raised when a user lacks the role or attribute for an action."""
    def __init__(self, message="Acesso negado"):
        super().__init__(message, 403)


class UnauthorizedError(CeasaError):
    """Raised when no authenticated user/tenant context is available."""
    def __init__(self, message="Não autorizado"):
        super().__init__(message, 401)
