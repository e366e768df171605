"""Error taxonomy for toolchat-server.

Conversation and provider errors abort a turn and propagate to the caller.
Tool errors (everything under ToolError) are recoverable: the orchestrator
renders them inline in the reply and the turn still completes.
"""


class ToolchatError(Exception):
    """Base class for all toolchat-server errors."""


class ConversationNotFound(ToolchatError, LookupError):
    """Raised when a conversation id is unknown to the session store."""

    def __init__(self, conversation_id: str):
        self.conversation_id = conversation_id
        super().__init__(f"Conversation {conversation_id} not found")


class ConversationBusy(ToolchatError):
    """Raised when a turn is rejected because another one is in flight."""

    def __init__(self, conversation_id: str):
        self.conversation_id = conversation_id
        super().__init__(f"Conversation {conversation_id} has a turn in progress")


class ProviderError(ToolchatError):
    """Raised when the model provider fails, times out or answers garbage."""


class DuplicateToolName(ToolchatError, ValueError):
    """Raised when two tools are registered under the same name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Tool '{name}' is already registered")


class ToolError(ToolchatError):
    """Base class for recoverable tool invocation failures.

    Attributes:
        tool_name: Name of the tool the model asked for
        kind: Short failure kind shown in the reply (the class name)
    """

    def __init__(self, tool_name: str, message: str):
        self.tool_name = tool_name
        self.message = message
        super().__init__(message)

    @property
    def kind(self) -> str:
        return type(self).__name__


class ToolNotFound(ToolError):
    """The model requested a tool that is not registered."""

    def __init__(self, tool_name: str):
        super().__init__(tool_name, f"Tool '{tool_name}' not found")


class ToolArgumentInvalid(ToolError):
    """Arguments were well-formed but not acceptable to the tool."""

    def __init__(self, message: str, tool_name: str = ""):
        super().__init__(tool_name, message)


class MissingArgument(ToolArgumentInvalid):
    """A required argument was not supplied."""


class ArityMismatch(ToolArgumentInvalid):
    """A fixed-arity operation got the wrong number of operands."""


class ArgumentOutOfDomain(ToolArgumentInvalid):
    """An argument value lies outside what the operation accepts."""


class ToolExecutionFailed(ToolError):
    """The tool's handler failed, timed out, or the payload could not be parsed."""

    def __init__(self, tool_name: str, cause: BaseException | str):
        self.cause = cause
        detail = cause if isinstance(cause, str) else (str(cause) or type(cause).__name__)
        super().__init__(tool_name, f"Error executing tool '{tool_name}': {detail}")
