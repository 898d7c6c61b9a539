"""
Tool registry.

The set of tools is closed: each one is declared once with the @tool decorator,
together with a pydantic model for its arguments. That model is the single
source for the JSON schema the LLM sees and for validating what the LLM sends
back, so malformed arguments are rejected at the boundary instead of trusted.

Tools are bound to a request with build_toolbox(). The ToolContext carries the
session's wallet credential, so a toolbox is never shared across sessions.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

import pydantic
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..core.errors import ValidationError
from ..services.custody import CustodyGateway
from ..services.ledger import ConfirmationLedger
from ..services.proposals import ActionProposalEngine

logger = logging.getLogger(__name__)


class ToolRisk(str, Enum):
    READ = "read"          # Read-only, no side effects
    EXTERNAL = "external"  # Reads from the custody provider
    PROPOSAL = "proposal"  # Creates a signing challenge. Moves nothing.


class ToolArgs(BaseModel):
    """Base for tool argument models. camelCase for the LLM, unknown keys rejected."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


@dataclass
class ToolContext:
    credential: str
    gateway: CustodyGateway
    engine: ActionProposalEngine
    ledger: ConfirmationLedger
    wallet_id: Optional[str] = None  # Primary wallet for this request
    subject_id: str = ""


ToolHandler = Callable[[BaseModel, ToolContext], Awaitable[str]]


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    args_model: type[BaseModel]
    handler: ToolHandler
    risk: ToolRisk
    category: str

    def parameters(self) -> dict:
        schema = self.args_model.model_json_schema(by_alias=True)
        schema.pop("title", None)
        for prop in schema.get("properties", {}).values():
            prop.pop("title", None)
        schema.setdefault("type", "object")
        schema.setdefault("properties", {})
        schema["additionalProperties"] = False
        return schema


# Each tool registered once, at import of its module
_tools: dict[str, ToolSpec] = {}


def tool(
    name: str,
    description: str,
    args_model: type[BaseModel],
    risk: ToolRisk = ToolRisk.READ,
    category: str = "general",
):
    """
    Decorator to register a coroutine as an LLM-callable tool.

    The handler receives the validated args model and the request's ToolContext
    and returns text for the model.
    """

    def decorator(func: ToolHandler):
        _tools[name] = ToolSpec(
            name=name,
            description=description,
            args_model=args_model,
            handler=func,
            risk=risk,
            category=category,
        )
        logger.debug("Registered tool: %s [%s/%s]", name, category, risk.value)
        return func

    return decorator


class UnknownTool(KeyError):
    pass


class Toolbox:
    """The registered tools bound to one request's context."""

    def __init__(self, context: ToolContext, specs: list[ToolSpec]):
        self.context = context
        self._specs = {s.name: s for s in specs}

    def for_llm(self) -> list[dict]:
        """All tools formatted for OpenAI function calling."""
        return [
            {
                "type": "function",
                "function": {
                    "name": s.name,
                    "description": s.description,
                    "parameters": s.parameters(),
                },
            }
            for s in self._specs.values()
        ]

    def names(self) -> list[str]:
        return list(self._specs)

    def risk(self, name: str) -> str:
        spec = self._specs.get(name)
        return spec.risk.value if spec else ToolRisk.READ.value

    async def invoke(self, name: str, raw_args: dict) -> str:
        spec = self._specs.get(name)
        if spec is None:
            raise UnknownTool(name)

        try:
            args = spec.args_model.model_validate(raw_args or {})
        except pydantic.ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'arguments'}: {err['msg']}"
                for err in e.errors()
            )
            raise ValidationError(f"Invalid arguments for {name}: {problems}")

        return await spec.handler(args, self.context)


def init_tools() -> None:
    """Import tool modules to trigger registration. Safe to call more than once."""
    from . import wallet  # noqa: F401
    from . import marketplace  # noqa: F401


def build_toolbox(context: ToolContext) -> Toolbox:
    init_tools()
    return Toolbox(context, list(_tools.values()))


def get_tool_names() -> list[str]:
    init_tools()
    return list(_tools)
