from __future__ import annotations


class EnsembleError(Exception):
    """Base class for failures raised by the sweep pipeline."""


class WorkspaceCreationError(EnsembleError, FileExistsError):
    """Target run directory already exists and holds files. Fatal to that run only."""


class ArtifactFormatError(EnsembleError, ValueError):
    """A reference document does not match the layout the writers expect.

    Raised before any workspace is written; the whole batch stops.
    """


class EngineInvocationFailure(EnsembleError, RuntimeError):
    def __init__(self, message: str, returncode: int = 1) -> None:
        super().__init__(message)
        self.returncode = returncode


class OutputMissingOrMalformed(EnsembleError, ValueError):
    """Output log absent, or a time block is truncated or unparsable."""
