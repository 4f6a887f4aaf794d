"""Domain-specific exceptions: framework-independent."""


class ConfigurationError(Exception):
    """Raised when a column/relation/table declaration is invalid.

    Only ever raised while registering configuration, never while serving
    requests.
    """

    def __init__(self, message: str, *, column_key: str | None = None):
        self.column_key = column_key
        self.message = message
        prefix = f"column '{column_key}': " if column_key else ""
        super().__init__(f"{prefix}{message}")


class UnknownKeyWarning(UserWarning):
    """Emitted when a filter/sort/distinct request names an unusable column key.

    The offending condition is dropped; callers never see an error.
    """


class DataSourceError(Exception):
    """Raised when the underlying store fails to execute a query."""

    def __init__(self, operation: str, cause: Exception | None = None):
        self.operation = operation
        self.cause = cause
        detail = f": {type(cause).__name__}: {cause}" if cause else ""
        super().__init__(f"Data source failure during {operation}{detail}")


class CacheCorruptionError(Exception):
    """Raised when a stored cache entry fails structural validation on read."""

    def __init__(self, key: object, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Corrupt cache entry {key!r}: {reason}")


class UnknownTableError(Exception):
    """Raised when a table id is not present in the table catalog."""

    def __init__(self, table_id: str):
        self.table_id = table_id
        super().__init__(f"Table '{table_id}' is not registered")
