class SizeServerError(Exception):
    """Base class for errors raised by size_server."""


class BoundsInverted(SizeServerError):
    """Raised when a bounds reset would leave lower above upper."""

    def __init__(self, lower: int, upper: int):
        super().__init__(f"lower bound {lower} is greater than upper bound {upper}")
        self.lower = lower
        self.upper = upper


class IdentityResolutionError(SizeServerError):
    """A channel name could not be turned into an Identity."""


class IdentityNotFound(IdentityResolutionError):
    def __init__(self, name: str):
        super().__init__(f"no user named {name}")
        self.name = name


class UpstreamUnavailable(IdentityResolutionError):
    """The identity provider could not complete the lookup."""
