"""
Excepciones del dominio
Proyecto: Taller Manager (Gestión de Taller)

Define las excepciones específicas de la aplicación para un manejo
centralizado de errores. Un único handler en `app.main` las convierte en
respuestas HTTP usando `status_code` y `error_code`.

NOTA: BusinessValidationError es distinta de pydantic.ValidationError.
- pydantic.ValidationError: errores de formato/tipo en la entrada (FastAPI → 422)
- BusinessValidationError: violaciones de reglas de negocio (nuestro handler → 422)
"""

from typing import Any, Dict, Optional

__all__ = [
    "AppException",
    "NotFoundError",
    "DuplicateError",
    "BusinessValidationError",
    "ValidationError",       # alias de BusinessValidationError
    "BudgetNotApprovedError",
    "NoPendingBudgetError",
    "SignatureRequiredError",
    "ConflictError",
    "AuthenticationError",
    "AuthorizationError",
    "RateLimitError",
    "StorageError",
]


class AppException(Exception):
    """
    Excepción base de la aplicación.

    Attributes:
        status_code: Código HTTP a devolver al cliente
        error_code: Identificador único del error para el frontend
        detail: Mensaje legible para el usuario
        extra: Datos adicionales para el frontend
    """

    status_code: int = 500
    error_code: str = "INTERNAL_SERVER_ERROR"
    default_detail: str = "Error interno del servidor"

    def __init__(
        self,
        detail: Optional[str] = None,
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Inicializa la excepción.

        Args:
            detail: Mensaje de error (default: el de la clase)
            error_code: Identificador único (default: el de la clase)
            extra: Datos adicionales (default: None)
        """
        self.detail = detail if detail is not None else self.default_detail
        self.error_code = error_code if error_code is not None else self.error_code
        self.extra = extra
        self.status_code = self.__class__.status_code
        super().__init__(self.detail)


class NotFoundError(AppException):
    """Recurso inexistente (orden, repuesto, servicio, categoría)."""

    status_code: int = 404
    error_code: str = "RESOURCE_NOT_FOUND"
    default_detail: str = "Recurso no encontrado"


class DuplicateError(AppException):
    """Violación de una restricción de unicidad (ej. nombre de categoría)."""

    status_code: int = 409
    error_code: str = "DUPLICATE_RESOURCE"
    default_detail: str = "El recurso ya existe"


class BusinessValidationError(ValueError, AppException):
    """
    Violación de una regla de negocio.

    Hereda de ValueError para poder usarse dentro de validadores Pydantic.

    Ejemplos:
        - "El nombre del cliente es requerido"
        - "El monto del pago debe ser mayor a cero"
        - "Acción no válida"
    """

    status_code: int = 422
    error_code: str = "BUSINESS_VALIDATION_ERROR"
    default_detail: str = "Validación de datos fallida"

    def __init__(
        self,
        detail: Optional[str] = None,
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        # Llama directamente a AppException.__init__ para saltar ValueError
        AppException.__init__(self, detail, error_code, extra)


# Alias por compatibilidad
ValidationError = BusinessValidationError


class BudgetNotApprovedError(BusinessValidationError):
    """
    Cambio de estado bloqueado por el presupuesto.

    Se lanza al intentar pasar a reparando, listo o entregado mientras
    el presupuesto está pendiente o rechazado.
    """

    error_code: str = "BUDGET_NOT_APPROVED"
    default_detail: str = "No se puede avanzar sin aprobación del presupuesto"


class SignatureRequiredError(BusinessValidationError):
    """Aprobación de presupuesto sin firma del cliente."""

    error_code: str = "SIGNATURE_REQUIRED"
    default_detail: str = "Se requiere firma para aprobar el presupuesto"


class ConflictError(AppException):
    """
    Conflicto con el estado actual del recurso.

    También se usa cuando la versión del agregado cambió entre la lectura
    y la escritura (actualización concurrente).
    """

    status_code: int = 409
    error_code: str = "CONFLICT_STATE"
    default_detail: str = "Conflicto de estado"


class NoPendingBudgetError(ConflictError):
    """Decisión sobre un presupuesto que no está pendiente."""

    error_code: str = "NO_PENDING_BUDGET"
    default_detail: str = "No hay presupuesto pendiente de aprobación"


class AuthenticationError(AppException):
    """Sesión ausente, inválida o expirada."""

    status_code: int = 401
    error_code: str = "UNAUTHORIZED"
    default_detail: str = "No autorizado"


class AuthorizationError(AppException):
    """
    Acceso no permitido al recurso.

    Ejemplo: el token del portal pertenece a otra orden.
    """

    status_code: int = 403
    error_code: str = "FORBIDDEN"
    default_detail: str = "No autorizado para esta orden"


class RateLimitError(AppException):
    """Demasiados intentos dentro de la ventana del rate limiter."""

    status_code: int = 429
    error_code: str = "TOO_MANY_REQUESTS"
    default_detail: str = "Demasiados intentos"

    def __init__(self, retry_after_seconds: int) -> None:
        super().__init__(
            f"Demasiados intentos. Intenta de nuevo en {retry_after_seconds} segundos.",
            extra={"retry_after": retry_after_seconds},
        )
        self.retry_after_seconds = retry_after_seconds


class StorageError(AppException):
    """
    Fallo del almacenamiento.

    La transacción se revirtió por completo: el llamador ve el último
    estado confirmado, nunca un agregado a medio escribir.
    """

    status_code: int = 503
    error_code: str = "STORAGE_FAILURE"
    default_detail: str = "Error de almacenamiento, intenta de nuevo"
