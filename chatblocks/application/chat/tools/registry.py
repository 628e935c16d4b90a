"""
Tool registry: the fixed set of tools the model may call during a turn.

Each tool declares a pydantic argument model. Arguments are validated
before the handler runs; the JSON schema of the model is what the LLM sees.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Type, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from chatblocks.core.log_sanitizer import sanitize_for_logging
from chatblocks.core.metrics_logger import log_metric
from chatblocks.domain.errors import ToolArgumentsError, UnknownToolError
from chatblocks.interfaces.events import DataStreamWriter
from chatblocks.interfaces.llm import ModelHandleProtocol

logger = logging.getLogger(__name__)


@dataclass
class ToolContext:
    """Everything a tool handler may touch during one turn."""
    stream: DataStreamWriter
    model: ModelHandleProtocol
    user_email: str
    chat_id: str


ToolHandler = Callable[[ToolContext, Any], Awaitable[Any]]


@dataclass
class RegisteredTool:
    name: str
    description: str
    args_model: Type[BaseModel]
    handler: ToolHandler

    def schema(self) -> Dict[str, Any]:
        """Function-calling schema in the chat-completions format."""
        parameters = self.args_model.model_json_schema()
        parameters.pop("title", None)
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": parameters,
            },
        }


class ToolRegistry:
    """Name -> tool table with schema export and validated dispatch."""

    def __init__(self):
        self._tools: Dict[str, RegisteredTool] = {}

    def register(self, name: str, description: str, args_model: Type[BaseModel], handler: ToolHandler) -> None:
        if name in self._tools:
            raise ValueError(f"Tool already registered: {name}")
        self._tools[name] = RegisteredTool(name, description, args_model, handler)

    @property
    def names(self) -> List[str]:
        return list(self._tools)

    def get(self, name: str) -> RegisteredTool:
        tool = self._tools.get(name)
        if tool is None:
            raise UnknownToolError(f"Unknown tool: {name}")
        return tool

    def tools_schema(self) -> List[Dict[str, Any]]:
        return [tool.schema() for tool in self._tools.values()]

    def parse_arguments(self, name: str, arguments: Union[str, Dict[str, Any], None]) -> BaseModel:
        """Validate raw model-produced arguments against the tool's schema.

        Raises:
            UnknownToolError: no tool with that name
            ToolArgumentsError: arguments are not valid JSON or fail validation
        """
        tool = self.get(name)
        if isinstance(arguments, str):
            try:
                arguments = json.loads(arguments) if arguments.strip() else {}
            except json.JSONDecodeError as exc:
                raise ToolArgumentsError(f"Arguments for {name} are not valid JSON") from exc
        try:
            return tool.args_model.model_validate(arguments or {})
        except PydanticValidationError as exc:
            raise ToolArgumentsError(f"Invalid arguments for {name}: {exc.error_count()} error(s)") from exc

    async def dispatch(self, name: str, args: BaseModel, context: ToolContext) -> Any:
        """Run a tool with already-validated arguments and return its result."""
        tool = self.get(name)
        logger.info("Executing tool %s for chat %s", name, sanitize_for_logging(context.chat_id))
        log_metric("tool_call", context.user_email, tool_name=name)
        return await tool.handler(context, args)
