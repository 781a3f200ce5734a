"""Errors raised by the orchestration layer."""


class OrchestrationError(Exception):
    """The orchestrator could not run a query at all.

    Distinct from a query that ran and found nothing.
    """


class ScoutDeploymentError(OrchestrationError):
    """No scout in a deployment plan could be started."""

    def __init__(self, message: str, failures: list[str] | None = None):
        super().__init__(message)
        self.failures = failures or []
