from __future__ import annotations


class GpustatExporterError(Exception):
    """Base class for every error raised by the exporter."""


class CollectionError(GpustatExporterError):
    """A collection cycle has to be aborted; metrics stay as they were."""


class GpustatInvocationError(CollectionError):
    """`gpustat` is missing, could not be started or exited non-zero."""

    def __init__(self, message: str, returncode: int | None = None) -> None:
        super().__init__(message)
        self.returncode = returncode


class ReportReadError(CollectionError):
    """The captured report could not be read as text."""


class MalformedLineError(GpustatExporterError):
    """A GPU line has fewer than the three `|` separated sections."""

    def __init__(self, line: str, reason: str = "invalid GPU line format") -> None:
        super().__init__(reason)
        self.line = line
        self.reason = reason
