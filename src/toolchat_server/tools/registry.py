"""ToolRegistry for advertising and dispatching tools.

This module provides the ToolRegistry class which handles:
- Registering tools with unique names
- Exporting tool declarations for the model, in registration order
- Looking tools up by name
- Validating raw model-supplied arguments and executing handlers

``invoke`` never raises a tool failure: every outcome, good or bad, comes
back as a ToolInvocationResult so the orchestrator can fold it into the reply.
"""

import asyncio
import inspect
import json
import logging
import time
from typing import Any, Iterable

from pydantic import ValidationError

from toolchat_server.errors import (
    ArgumentOutOfDomain,
    DuplicateToolName,
    MissingArgument,
    ToolArgumentInvalid,
    ToolError,
    ToolExecutionFailed,
    ToolNotFound,
)
from toolchat_server.tools.types import (
    ToolDeclaration,
    ToolInvocationResult,
    ToolSpec,
)

logger = logging.getLogger(__name__)

# Pydantic error types that mean "the value is not one the tool accepts"
_OUT_OF_DOMAIN_ERRORS = {"literal_error", "enum"}


def _field_name(error: dict[str, Any]) -> str:
    return ".".join(str(part) for part in error.get("loc", ())) or "arguments"


class ToolRegistry:
    """An ordered, append-only collection of tools.

    Tools are registered once at startup; there is no way to remove or
    replace one afterwards.
    """

    def __init__(
        self,
        tools: Iterable[ToolSpec] = (),
        timeout: float | None = None,
    ):
        """Initialize the ToolRegistry.

        Args:
            tools: Tools to register, in advertisement order
            timeout: Optional per-invocation timeout in seconds

        Raises:
            DuplicateToolName: If two tools share a name
        """
        self.timeout = timeout
        self._tools: dict[str, ToolSpec] = {}
        for spec in tools:
            self.register(spec)

    def register(self, spec: ToolSpec) -> None:
        """Register a tool.

        Raises:
            DuplicateToolName: If a tool with the same name is already present
        """
        if spec.name in self._tools:
            raise DuplicateToolName(spec.name)
        self._tools[spec.name] = spec
        logger.info(f"Registered tool: {spec.name}")

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def describe_all(self) -> list[ToolDeclaration]:
        """Get declarations for every tool, in registration order."""
        return [
            ToolDeclaration(
                name=spec.name,
                description=spec.description,
                parameters=spec.arguments.model_json_schema(),
            )
            for spec in self._tools.values()
        ]

    def lookup(self, name: str | None) -> ToolSpec | None:
        """Get a tool by name, or None if it is not registered."""
        if not name:
            return None
        return self._tools.get(name)

    async def invoke(self, name: str | None, raw_arguments: Any) -> ToolInvocationResult:
        """Validate arguments and execute a tool.

        Args:
            name: Tool name as sent by the model (may be empty)
            raw_arguments: Argument payload, either a mapping or a JSON string

        Returns:
            ToolInvocationResult carrying either the value and its rendering
            or the ToolError describing what went wrong
        """
        name = name or ""
        spec = self.lookup(name)
        if spec is None:
            logger.warning(f"Unknown tool requested: {name!r}")
            return self._failure(name, ToolNotFound(name))

        try:
            arguments = self._validate(spec, raw_arguments)
        except ToolError as e:
            logger.warning(f"Rejected arguments for tool {name}: {e}")
            return self._failure(name, e)

        logger.info(f"Executing tool: {name}")
        started = time.monotonic()
        try:
            value = await self._run(spec, arguments)
            text = spec.render(value)
        except ToolArgumentInvalid as e:
            e.tool_name = e.tool_name or name
            logger.warning(f"Tool {name} rejected its input: {e}")
            return self._failure(name, e)
        except asyncio.TimeoutError:
            logger.warning(f"Tool {name} timed out after {self.timeout}s")
            return self._failure(
                name, ToolExecutionFailed(name, f"timed out after {self.timeout}s")
            )
        except Exception as e:
            logger.error(f"Tool {name} failed: {e}", exc_info=True)
            return self._failure(name, ToolExecutionFailed(name, e))

        elapsed = time.monotonic() - started
        logger.info(f"Tool {name}: {elapsed:.3f}s -> ok")
        return ToolInvocationResult(name=name, value=value, text=text)

    def _validate(self, spec: ToolSpec, raw_arguments: Any) -> Any:
        if raw_arguments is None:
            raw_arguments = {}
        if isinstance(raw_arguments, (str, bytes)):
            try:
                raw_arguments = json.loads(raw_arguments or "{}")
            except json.JSONDecodeError as e:
                raise ToolExecutionFailed(spec.name, f"arguments are not valid JSON ({e})")
        if not isinstance(raw_arguments, dict):
            raise ToolExecutionFailed(
                spec.name,
                f"arguments must be an object, got {type(raw_arguments).__name__}",
            )

        try:
            return spec.arguments.model_validate(raw_arguments)
        except ValidationError as e:
            errors = e.errors()
            missing = [_field_name(err) for err in errors if err["type"] == "missing"]
            if missing:
                raise MissingArgument(
                    f"Missing required argument(s): {', '.join(missing)}",
                    tool_name=spec.name,
                )
            for err in errors:
                if err["type"] in _OUT_OF_DOMAIN_ERRORS:
                    raise ArgumentOutOfDomain(
                        f"Invalid value for '{_field_name(err)}': {err['msg']}",
                        tool_name=spec.name,
                    )
            raise ToolExecutionFailed(spec.name, e)

    async def _run(self, spec: ToolSpec, arguments: Any) -> Any:
        if inspect.iscoroutinefunction(spec.handler):
            call = spec.handler(arguments)
        else:
            call = asyncio.to_thread(spec.handler, arguments)
        if self.timeout is None:
            return await call
        return await asyncio.wait_for(call, timeout=self.timeout)

    @staticmethod
    def _failure(name: str, error: ToolError) -> ToolInvocationResult:
        return ToolInvocationResult(name=name, error=error, text=str(error))
