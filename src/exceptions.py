"""Exception types for the policy daemon."""


class PolicyDaemonError(Exception):
    """Base class for policy daemon errors."""


class CacheUnavailableError(PolicyDaemonError):
    """The decision cache store could not be reached or answered with an error."""


class ApiKeyError(PolicyDaemonError):
    """The reputation service rejected or did not answer the API key self-test."""


class StartupError(PolicyDaemonError):
    """A worker could not initialize its resources or bind its listening socket."""
