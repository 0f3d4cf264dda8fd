"""Exception hierarchy shared by the extraction engine and its collectors.

Configuration errors are raised while metrics are being defined and are meant
to abort startup. Everything else is raised during a scrape pass and is
caught, logged and turned into a missing sample by the collectors.
"""


class ExporterError(Exception):
    """Base class for all exporter errors."""


class ConfigurationError(ExporterError):
    """A metric set that cannot be published as configured."""


class InvalidPathSyntax(ConfigurationError):
    def __init__(self, expression: str, reason: str) -> None:
        super().__init__(f"Invalid path expression {expression!r}: {reason}")
        self.expression = expression


class DuplicateMetric(ConfigurationError):
    pass


class LabelArityError(ConfigurationError, ValueError):
    pass


class AlreadyRegistered(ExporterError):
    def __init__(self) -> None:
        super().__init__("Can't add metrics to an already registered collector.")


class FetchError(ExporterError):
    """The upstream document could not be obtained."""


class TransportFailure(FetchError):
    pass


class DecodeFailure(FetchError):
    pass


class ExtractionError(ExporterError):
    """A single metric could not be extracted from a document."""


class PathNotFound(ExtractionError):
    def __init__(self, expression: str) -> None:
        super().__init__(f"Nothing found at {expression!r}")
        self.expression = expression


class PathEvaluationError(ExtractionError):
    pass


class TypeMismatch(ExtractionError):
    pass


class NotNumeric(TypeMismatch):
    pass


class MissingNodeLabel(ExtractionError):
    pass
