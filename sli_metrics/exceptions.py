"""Exceptions raised by the metrics registry and exporter."""


class ConfigurationError(Exception):
    """Raised when startup configuration is invalid.

    Fatal: the process does not start serving.
    """

    pass


class DuplicateMeasureError(ConfigurationError):
    """Raised when a measure name is defined twice in one registry."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Measure {name} is already defined")


class ViewRegistrationError(ConfigurationError):
    """Raised when a set of views cannot be registered.

    No view of the rejected set is registered.
    """

    def __init__(self, message: str, view_names: list[str] | None = None) -> None:
        self.message = message
        self.view_names = view_names or []
        super().__init__(message)


class ExportError(Exception):
    """Raised by a monitoring backend when an export cycle fails.

    Not fatal: the exporter logs it and retries on the next cycle.
    """

    def __init__(self, backend: str, cause: str) -> None:
        self.backend = backend
        self.cause = cause
        super().__init__(f"Export to {backend} failed: {cause}")
