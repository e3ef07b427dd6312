class ConfigError(RuntimeError):
    pass


class DataStoreError(RuntimeError):
    """Falha numa chamada CRUD contra o banco hospedado."""


class SyncError(RuntimeError):
    """Escrita otimista que falhou no servidor e foi revertida localmente."""


class ValidationError(ValueError):
    """Entrada de formulário rejeitada antes de qualquer I/O."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message
