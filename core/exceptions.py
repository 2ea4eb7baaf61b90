"""
Core domain exceptions.

These exceptions are transport-agnostic and are caught by the command
runner, which turns them into replies (or silence) for the chat platform.
HTTP failures are not wrapped: they surface as ``httpx.HTTPError``.
"""


class CoreError(Exception):
    """Base exception for all core errors."""

    pass


class ConfigError(CoreError):
    """Raised when a command configuration cannot be used."""

    pass


class ArgumentError(CoreError):
    """Raised when an invocation line does not match the command's arguments."""

    pass


class PipelineAbort(CoreError):
    """Ends an invocation silently.

    Raised by a hook returning ``False`` (reason ``hookBlock``) or when a
    conditional request reports the data as unmodified (reason ``resModified``).
    """

    def __init__(self, message: str, reason: str):
        self.reason = reason
        super().__init__(message)


class HookMessage(CoreError):
    """Ends an invocation, replying with the text a hook returned."""

    def __init__(self, text: str):
        self.text = text
        super().__init__(text)


class RenderError(CoreError):
    """Raised when a renderer cannot produce output."""

    pass
