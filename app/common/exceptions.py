"""Excepciones de dominio del ledger.

Los servicios las lanzan y app.main las traduce a respuestas HTTP. Los errores
del almacenamiento (sqlalchemy.exc.*) no se envuelven: se propagan tal cual
después del rollback.
"""


class LedgerError(Exception):
    """Base exception for ledger operations."""

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context


class LedgerValidationError(LedgerError):
    """Entrada mal formada, detectada antes de cualquier escritura."""

    pass


class NotFoundError(LedgerError):
    """La operación referencia un registro que no existe."""

    pass


class ConstraintViolation(LedgerError):
    """La operación rompería una regla del ledger (p. ej. stock negativo)."""

    pass
