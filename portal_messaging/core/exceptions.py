# portal_messaging/core/exceptions.py

class AppError(Exception):
    code = "app_error"

    def __init__(self, message: str, *, status_code: int = 400) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotAuthenticatedError(AppError):
    code = "not_authenticated"

    def __init__(self, message: str = "Veuillez vous connecter.") -> None:
        super().__init__(message, status_code=401)


class ForbiddenError(AppError):
    code = "forbidden"

    def __init__(self, message: str = "Accès refusé.") -> None:
        super().__init__(message, status_code=403)


class NotFoundError(AppError):
    code = "not_found"

    def __init__(self, message: str = "Ressource introuvable.") -> None:
        super().__init__(message, status_code=404)


class ValidationError(AppError):
    code = "validation_error"

    def __init__(self, message: str = "Requête invalide.") -> None:
        super().__init__(message, status_code=400)


class ConflictError(AppError):
    code = "conflict"

    def __init__(self, message: str = "Conflit.") -> None:
        super().__init__(message, status_code=409)


class NoOpError(AppError):
    """Mutação que não teria efeito (ex.: todos os membros já presentes)."""

    code = "noop"

    def __init__(self, message: str = "Aucune modification à appliquer.") -> None:
        super().__init__(message, status_code=409)


class TransactionError(AppError):
    code = "transaction_failed"

    def __init__(self, message: str = "L'opération n'a pas pu être enregistrée.") -> None:
        super().__init__(message, status_code=500)
