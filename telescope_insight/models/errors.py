"""
Error kinds raised by tools and turned into error envelopes at the tool boundary.
"""


class ToolError(Exception):
    """Base class for failures reported to callers as a structured error result"""
    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(ToolError):
    kind = "not_found"


class InvalidArgument(ToolError):
    kind = "invalid_argument"


class UpstreamUnavailable(ToolError):
    """The storage collaborator is missing, unreadable or failed mid-call"""
    kind = "upstream_unavailable"
