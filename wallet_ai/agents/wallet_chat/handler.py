"""
Wallet chat agent - LLM + tool calling over the user's wallet and the e-book marketplace.

The model can read balances and history, and it can PREPARE transfers and
purchases. It can never complete one: proposals come back as a pending action
the user signs in the browser.
"""

import asyncio
import json
import logging
import time
from typing import Optional

import httpx

from ...core.errors import UpstreamFailure, ValidationError, WalletAIError
from ...core.guardrails import check_input
from ...models import ActionProposal
from ...orchestrator.base_agent import AgentResponse, BaseAgent
from ...services import llm
from ...tools.pending_action import extract_pending_action, strip_pending_action
from ...tools.registry import ToolContext, Toolbox, ToolRisk, UnknownTool, build_toolbox

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a helpful assistant for a user-controlled crypto wallet on a testnet, with a built-in e-book marketplace.

## What you can do
- Check balances, wallet details and transaction history with the wallet tools.
- Browse and search the e-book marketplace, and list what the user already bought.
- PREPARE token transfers and e-book purchases.

## How money moves
- You never send funds. transfer_tokens and purchase_ebook only prepare a challenge.
- The user confirms and signs every prepared action in the app with their PIN.
- After preparing one, tell the user what you prepared and that they need to confirm it. Do not say it was sent or paid.

## Guidelines
- Call check_wallet_balance before a transfer to get the token ID. Never guess token IDs.
- Amounts are decimal strings such as "0.1".
- If a tool returns an error, explain it plainly and suggest a next step.
- Never mention internal tool names or markers. Keep answers short."""

# ── Configuration ─────────────────────────────────────────────────────────────

MAX_ITERATIONS = 5            # Max model round trips per request
MAX_TOOL_RESULT_CHARS = 4000  # Cap individual tool results fed back to the model
FALLBACK_REPLY = (
    "I couldn't finish that request. Could you try again with a more specific ask?"
)


class WalletChatAgent(BaseAgent):
    name = "wallet_chat"
    display_name = "Wallet Assistant"
    description = "Chat over wallet reads, marketplace browsing and signed-action proposals"

    # ── Main handler ──────────────────────────────────────────────

    async def handle(self, message: str, context: ToolContext) -> AgentResponse:
        """Run the bounded tool loop for one message."""
        start_time = time.monotonic()

        guard = check_input(message, context.subject_id)
        if not guard.allowed:
            raise ValidationError(guard.reason)

        toolbox = build_toolbox(context)
        tools = toolbox.for_llm()
        messages = self._build_messages(message, context.wallet_id)
        tool_calls_log: list[dict] = []
        pending_action: Optional[ActionProposal] = None
        last_model_text = ""
        last_tool_text = ""

        for iteration in range(MAX_ITERATIONS):
            assistant_msg = await self._complete(messages, tools)
            content = assistant_msg.get("content") or ""
            if content:
                last_model_text = content

            # ── No tool calls → final response ────────────────────
            if not assistant_msg.get("tool_calls"):
                return AgentResponse(
                    content=content,
                    pending_action=pending_action,
                    metadata=self._metadata(tool_calls_log, iteration + 1, start_time),
                )

            # ── Process tool calls concurrently ───────────────────
            messages.append(assistant_msg)
            results = await self._execute_tool_calls(assistant_msg["tool_calls"], toolbox, tool_calls_log)

            for result_msg, action in results:
                if action is not None:
                    pending_action = action  # Last one observed wins
                last_tool_text = result_msg["content"]
            messages.extend(result_msg for result_msg, _ in results)

        # ── Hit the bound ─────────────────────────────────────────
        logger.warning("Tool loop hit MAX_ITERATIONS=%d", MAX_ITERATIONS)
        content = last_model_text or strip_pending_action(last_tool_text) or FALLBACK_REPLY
        metadata = self._metadata(tool_calls_log, MAX_ITERATIONS, start_time)
        metadata["hit_max_iterations"] = True
        return AgentResponse(content=content, pending_action=pending_action, metadata=metadata)

    # ── Model call ────────────────────────────────────────────────

    async def _complete(self, messages: list[dict], tools: list[dict]) -> dict:
        """One completion. Transport or configuration failures abort the turn."""
        try:
            response = await llm.chat(messages=messages, tools=tools or None, tool_choice="auto")
            return response["choices"][0]["message"]
        except (httpx.HTTPError, ValueError) as e:
            logger.error("LLM completion failed: %s", e)
            raise UpstreamFailure(f"LLM completion failed: {e}")
        except (KeyError, IndexError, TypeError) as e:
            logger.error("Malformed LLM response: %s", e)
            raise UpstreamFailure("LLM returned a malformed response")

    # ── Message building ──────────────────────────────────────────

    def _build_messages(self, message: str, wallet_id: Optional[str]) -> list[dict]:
        messages = [{"role": "system", "content": SYSTEM_PROMPT}]
        if wallet_id:
            messages.append({
                "role": "system",
                "content": (
                    f"The user's primary wallet ID is {wallet_id}. "
                    "Use it whenever a tool needs a wallet ID and the user did not name another one."
                ),
            })
        messages.append({"role": "user", "content": message})
        return messages

    @staticmethod
    def _metadata(log: list[dict], iterations: int, start_time: float) -> dict:
        return {
            "tool_calls": log or None,
            "iterations": iterations,
            "elapsed_ms": int((time.monotonic() - start_time) * 1000),
        }

    # ── Tool execution ────────────────────────────────────────────

    async def _execute_tool_calls(
        self,
        tool_calls: list[dict],
        toolbox: Toolbox,
        log: list,
    ) -> list[tuple[dict, Optional[ActionProposal]]]:
        """
        Run every tool call of one model turn concurrently and wait for all of them.

        Returns (tool message, pending action) pairs in call order. A failing
        tool becomes error text for the model; it never aborts the turn.
        """

        async def _run_one(tc) -> tuple[dict, Optional[ActionProposal]]:
            call_start = time.monotonic()
            call_id = tc.get("id") if isinstance(tc, dict) else None
            function = tc.get("function") if isinstance(tc, dict) else None

            def _result(content: str) -> dict:
                return {"role": "tool", "tool_call_id": call_id or "", "content": content}

            # Validate call shape
            func_name = function.get("name") if isinstance(function, dict) else None
            if not func_name or not isinstance(func_name, str):
                logger.warning("Malformed tool call from model: %s", str(tc)[:200])
                return _result("Error: Malformed tool call. Each call needs a function name and JSON arguments."), None

            # Parse arguments
            raw_args = function.get("arguments") or "{}"
            try:
                func_args = json.loads(raw_args) if isinstance(raw_args, str) else raw_args
            except json.JSONDecodeError as e:
                logger.error("Bad tool args for %s: %s", func_name, e)
                return _result(
                    f"Error: Invalid JSON arguments for {func_name}. "
                    f"Check the argument format and try again. Details: {e}"
                ), None
            if not isinstance(func_args, dict):
                return _result(f"Error: Arguments for {func_name} must be a JSON object."), None

            log.append({"tool": func_name, "args": func_args, "risk": toolbox.risk(func_name)})
            logger.info("Tool call: %s(%s)", func_name, json.dumps(func_args)[:200])

            # Execute with error isolation
            try:
                result = await toolbox.invoke(func_name, func_args)
            except UnknownTool:
                logger.warning("Unknown tool called: %s", func_name)
                return _result(
                    f"Error: Unknown tool '{func_name}'. "
                    f"Available tools: {', '.join(toolbox.names())}."
                ), None
            except WalletAIError as e:
                logger.info("Tool %s rejected: %s", func_name, e.message)
                return _result(f"Error: {e.public_message}"), None
            except Exception as e:
                elapsed = time.monotonic() - call_start
                logger.error("Tool '%s' failed after %dms: %s", func_name, int(elapsed * 1000), e)
                return _result(
                    f"Tool error ({func_name}): {type(e).__name__}: {e}. "
                    "You can try again with different parameters, or use an alternative approach."
                ), None

            # Only proposal tools create challenges; markers in any other result are echoed input
            action = None
            if toolbox.risk(func_name) == ToolRisk.PROPOSAL.value:
                action = extract_pending_action(result)
            if action is None and len(result) > MAX_TOOL_RESULT_CHARS:
                result = result[:MAX_TOOL_RESULT_CHARS - 100] + "\n\n... [result truncated]"

            elapsed = time.monotonic() - call_start
            logger.info("Tool %s completed in %dms", func_name, int(elapsed * 1000))
            return _result(result), action

        results = await asyncio.gather(*[_run_one(tc) for tc in tool_calls])
        return list(results)


_agent: Optional[WalletChatAgent] = None


def get_agent() -> WalletChatAgent:
    global _agent
    if _agent is None:
        _agent = WalletChatAgent()
    return _agent
