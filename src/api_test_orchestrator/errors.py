"""Error taxonomy for the generation run.

Per-job errors are contained at the job boundary: they are retried, resolved
by the fallback engine, or promoted to a run-level FatalRunError.
"""


class OrchestratorError(Exception):
    """Base class for all api-test-orchestrator errors."""


class DocumentStructureError(OrchestratorError):
    """The API document has no usable ``paths`` collection."""


class TransientGenerationError(OrchestratorError):
    """Network, timeout or service error from the generation collaborator."""


class MalformedResponseError(TransientGenerationError):
    """The collaborator replied, but the content was unusable after cleanup."""


class FatalConfigurationError(OrchestratorError):
    """Unusable credentials or setup. Never retried."""


class ExhaustedRetryError(OrchestratorError):
    """A job used its whole retry budget without a usable result."""

    def __init__(self, attempts: int, last_error: Exception | None):
        self.attempts = attempts
        self.last_error = last_error
        detail = f": {last_error}" if last_error else ""
        super().__init__(f"generation failed after {attempts} attempt(s){detail}")


class FatalRunError(OrchestratorError):
    """The whole run was aborted. Carries the counters gathered so far."""

    def __init__(self, message: str, processed: int = 0, failed: int = 0):
        self.processed = processed
        self.failed = failed
        super().__init__(message)
