"""Error types raised by the hostwatch agent."""


class HostwatchError(Exception):
    """Base class for all hostwatch errors."""


class SampleError(HostwatchError):
    """A required OS counter could not be read for this tick."""


class ConfigError(HostwatchError):
    """The agent cannot start with the current configuration or host."""


class RemoteError(HostwatchError):
    """A call to the remote monitor service failed.

    Attributes:
        metric_kind: Metric the call was made for, if any
        operation: Client operation name ("open", "close", "fetch")
        status_code: HTTP status of the response, None for transport failures
    """

    def __init__(
        self,
        message: str,
        metric_kind=None,
        operation: str = "",
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.metric_kind = metric_kind
        self.operation = operation
        self.status_code = status_code
