"""
Survey exception classes and the tagged fetch result.

Fatal errors abort the whole run and surface to the CLI:
- ConfigError / UnknownOriginError: unusable configuration
- MissingClusterNameError: a cluster has no logical name
- ClusterListingError: a cluster's root listing could not be fetched
- TunnelLaunchError / TunnelNotReadyError: port-forwarding failed

Recoverable failures never become exceptions past the fetch step. The
crawler wraps every admin call in a FetchResult whose ErrorKind says
whether a failure aborts the run or only drops a subtree.

Per project patterns:
- Inherit from a common base so the CLI can catch one type
- Store context data in attributes for error handling
- Include descriptive message with relevant details
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class SurveyError(Exception):
    """Base class for errors that abort a survey run."""


class ConfigError(SurveyError):
    """Raised when the run configuration cannot be used."""


class UnknownOriginError(ConfigError):
    """
    Raised when a target is neither a URL nor an existing kubeconfig file.

    Attributes:
        descriptor: The raw target descriptor
    """

    def __init__(self, descriptor: str) -> None:
        self.descriptor = descriptor
        super().__init__(
            f"I don't know what '{descriptor}' is. "
            f"Expected a http(s) URL or a kubeconfig file."
        )


class MissingClusterNameError(SurveyError):
    """
    Raised when a cluster has no logical name to crawl under.

    Attributes:
        origin: URL or kubeconfig path of the nameless cluster
    """

    def __init__(self, origin: str) -> None:
        self.origin = origin
        super().__init__(
            f"{origin}: no cluster name provided. "
            f"Use '<origin>,<cluster-name>' to name it."
        )


class ClusterListingError(SurveyError):
    """
    Raised when a cluster's root listing cannot be fetched.

    Attributes:
        cluster: Logical cluster name
        url: The URL that failed
        reason: Description of the underlying failure
    """

    def __init__(self, cluster: str, url: str, reason: str) -> None:
        self.cluster = cluster
        self.url = url
        self.reason = reason
        super().__init__(f"{cluster}: failed to fetch {url}: {reason}")


class TunnelError(SurveyError):
    """
    Base class for port-forwarding failures.

    Attributes:
        target: Label of the target the tunnel was for
    """

    def __init__(self, target: str, message: str) -> None:
        self.target = target
        super().__init__(message)


class TunnelLaunchError(TunnelError):
    """Raised when the port-forwarding process cannot be started."""

    def __init__(self, target: str, reason: str) -> None:
        self.reason = reason
        super().__init__(
            target, f"Failed to launch port-forwarding for {target}: {reason}"
        )


class TunnelNotReadyError(TunnelError):
    """Raised when a tunnel never reports that forwarding is up."""

    def __init__(self, target: str, reason: str = "not ready") -> None:
        self.reason = reason
        super().__init__(
            target, f"Failed to start port-forwarding for {target}: {reason}"
        )


class ErrorKind(str, Enum):
    """What a failed fetch means for the crawl."""

    FATAL = "fatal"
    SUBTREE = "subtree"


@dataclass
class FetchResult:
    """
    Outcome of a single admin API call.

    Attributes:
        url: Absolute URL that was requested
        kind: Consequence of a failure (FATAL aborts, SUBTREE skips)
        value: Parsed payload on success
        error: Failure description, None on success
    """

    url: str
    kind: ErrorKind
    value: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def fatal(self) -> bool:
        return not self.ok and self.kind is ErrorKind.FATAL
