"""
Router Agent - conversational front door over the router tools.

One turn:
1. Send the user message plus the four tool definitions to the model
2. While the model stops with "tool_use": run each requested tool (in
   order) through RouterTools and send the results back
3. Return the model's final text

Concierge errors raised by a tool are reported back to the model as an
error tool_result, so the model can explain them. Anything else propagates.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import anthropic

from concierge.config import ANTHROPIC_API_KEY, MAX_TOKENS, ROUTER_MAX_TOOL_ROUNDS, ROUTER_MODEL_ID, TIMEOUT_SECONDS
from concierge.services.dispatcher import RouterTools
from concierge.services.errors import ConciergeError, RouterRoundsExceededError, format_error_response
from concierge.services.prompt_loader import load_prompt_template

logger = logging.getLogger(__name__)


@dataclass
class ToolCall:
    tool_id: str
    arguments: Dict[str, Any]
    output: Dict[str, Any]
    is_error: bool = False


@dataclass
class RouterReply:
    text: str
    tool_calls: List[ToolCall] = field(default_factory=list)


class RouterAgent:

    def __init__(
        self,
        tools: RouterTools,
        client: Optional[anthropic.AsyncAnthropic] = None,
        model: str = ROUTER_MODEL_ID,
        instructions: Optional[str] = None,
        max_rounds: int = ROUTER_MAX_TOOL_ROUNDS,
        max_tokens: int = MAX_TOKENS,
    ):
        self.tools = tools
        self.model = model
        self.instructions = instructions if instructions is not None else load_prompt_template("router_agent")
        self.max_rounds = max_rounds
        self.max_tokens = max_tokens
        self._client = client

    def _get_client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            self._client = anthropic.AsyncAnthropic(api_key=ANTHROPIC_API_KEY, timeout=TIMEOUT_SECONDS)
        return self._client

    async def respond(self, message: str) -> RouterReply:
        """Handle one user message end to end."""
        client = self._get_client()
        definitions = self.tools.definitions()
        messages: List[Dict[str, Any]] = [{"role": "user", "content": message}]
        calls: List[ToolCall] = []

        for round_number in range(1, self.max_rounds + 1):
            response = await client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=self.instructions,
                tools=definitions,
                messages=messages,
            )

            if response.stop_reason != "tool_use":
                text = "".join(block.text for block in response.content if block.type == "text")
                logger.info(f"Router finished after {round_number} round(s), {len(calls)} tool call(s)")
                return RouterReply(text=text, tool_calls=calls)

            messages.append({"role": "assistant", "content": response.content})
            results = []
            for block in response.content:
                if block.type != "tool_use":
                    continue
                call = await self._run_tool(block.name, block.input)
                calls.append(call)
                results.append({
                    "type": "tool_result",
                    "tool_use_id": block.id,
                    "content": json.dumps(call.output),
                    "is_error": call.is_error,
                })
            messages.append({"role": "user", "content": results})

        raise RouterRoundsExceededError(self.max_rounds)

    async def _run_tool(self, tool_id: str, arguments: Dict[str, Any]) -> ToolCall:
        logger.info(f"Router requested tool '{tool_id}'")
        try:
            output = await self.tools.invoke(tool_id, arguments)
        except ConciergeError as e:
            logger.warning(f"Tool '{tool_id}' failed: {e}")
            return ToolCall(tool_id, dict(arguments or {}), format_error_response(e), is_error=True)
        return ToolCall(tool_id, dict(arguments or {}), output)
