"""Default I/O collaborators: archive transport, process launcher and
validation client.  The core depends only on their protocols."""

from clusterforge.io.client import HttpValidationClient, ValidationClient
from clusterforge.io.process import ProcessHandle, ProcessLauncher, SubprocessLauncher
from clusterforge.io.transport import HttpTransport, Transport

__all__ = [
    "HttpTransport",
    "HttpValidationClient",
    "ProcessHandle",
    "ProcessLauncher",
    "SubprocessLauncher",
    "Transport",
    "ValidationClient",
]
