"""Error hierarchy for clusterforge.

Every error raised by the library derives from ``ClusterForgeError``.  None of
them are retried internally: the only recovery path is re-invoking a phase,
which resumes from the task log.
"""

from __future__ import annotations


class ClusterForgeError(RuntimeError):
    """Base class for all clusterforge errors."""


class MalformedVersionError(ClusterForgeError, ValueError):
    """Raised when a version specifier cannot be parsed."""


class UnresolvedAliasError(MalformedVersionError):
    """Raised when an alias version (``latest``, ``latest-N``) is used where a
    concrete version is required."""


class MalformedRangeError(ClusterForgeError, ValueError):
    """Raised when a range expression cannot be parsed."""


class NoMatchingVersionError(ClusterForgeError):
    """Raised when alias or range resolution finds zero candidates."""


class CatalogRequestError(ClusterForgeError):
    """Raised when the remote artifact catalog answers with an error status."""


class ArtifactNotFoundError(ClusterForgeError):
    """Raised when a caller decides a missing catalog artifact is fatal."""


class RequiredEnvironmentMissingError(ClusterForgeError):
    """Raised when a mandatory runtime home is absent for a version that needs it."""


class TaskExecutionError(ClusterForgeError):
    """Raised when a lifecycle task fails (download, extract, plugin install...)."""


class ProcessStartError(TaskExecutionError):
    """Raised when a node process exits or times out before reporting started."""


class ValidationFailedError(ClusterForgeError):
    """Raised when the running instance does not match the expected state."""


class ValidationRequestError(ValidationFailedError):
    """Raised when the validation client receives a non-success response."""


class InvalidTransitionError(ClusterForgeError):
    """Raised when a node state transition is not allowed."""


class CacheKeyError(ClusterForgeError):
    """Raised when a cache key cannot be derived from a configuration."""
