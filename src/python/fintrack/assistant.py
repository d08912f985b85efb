"""Read-only LLM assistant over the user's financial data.

The model can only call the tools enumerated in FINANCE_TOOLS. Each tool
queries the gateway directly, so it can reach any month rather than just the
one held in the synchronizer snapshot.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
import datetime as dt
from decimal import Decimal
from enum import Enum
import json
import logging
from typing import Any, Callable

import openai

from fintrack.exceptions import InferenceError, ValidationError
from fintrack.models import UserSettings, to_decimal
from fintrack.persistence import Eq, PersistenceBackend
from fintrack.schema import DEFAULT_CURRENCY_LABEL, EXPENSES, INCOMES, USERS

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "openai/gpt-oss-120b"
DEFAULT_BASE_URL = "https://api.groq.com/openai/v1"
PLACEHOLDER_API_KEYS = {"", "gsk_tukey_here", "your-api-key", "changeme"}

GREETING = "Hi! I'm your FinTrack assistant. How can I help you today?"
MISSING_KEY_MESSAGE = (
    "Error: the assistant API key is not configured. Set GROQ_API_KEY or "
    "inference.api_key in the config file."
)
AUTH_ERROR_MESSAGE = "Authentication with the assistant service failed. Check the API key."
EMPTY_RESPONSE_MESSAGE = "Sorry, I couldn't generate a response."
READ_ONLY_REFUSAL = (
    "Function not found or action not allowed. This system is READ-ONLY. "
    "If you want to calculate savings, ask me to review your incomes and "
    "expenses for the month."
)
USER_NOT_IDENTIFIED = "User not identified."

FINANCE_TOOLS: list[dict[str, Any]] = [
    {
        "type": "function",
        "function": {
            "name": "get_financial_summary",
            "description": "Get the user's all-time total incomes and expenses.",
            "parameters": {"type": "object", "properties": {}, "required": []},
        },
    },
    {
        "type": "function",
        "function": {
            "name": "get_monthly_details",
            "description": (
                "Get income and expense details for a specific month and year. "
                "Useful for computing the month's savings (incomes - expenses)."
            ),
            "parameters": {
                "type": "object",
                "properties": {
                    "month": {"type": "integer", "description": "Month number (1-12)"},
                    "year": {"type": "integer", "description": "Year (e.g. 2024)"},
                },
                "required": ["month", "year"],
            },
        },
    },
    {
        "type": "function",
        "function": {
            "name": "get_savings_info",
            "description": "Get the user's savings goal and savings rate.",
            "parameters": {"type": "object", "properties": {}, "required": []},
        },
    },
]


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (dt.date, dt.datetime)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _sum_amounts(rows: list[dict[str, Any]]) -> Decimal:
    return sum((to_decimal(row.get("amount")) for row in rows), Decimal("0"))


class AssistantToolBridge:
    """Translate named tool calls into read-only gateway queries."""

    def __init__(self, gateway: PersistenceBackend, user_id: int | None) -> None:
        self.gateway = gateway
        self.user_id = user_id
        self._handlers: dict[str, Callable[[dict[str, Any]], Any]] = {
            "get_financial_summary": self._financial_summary,
            "get_monthly_details": self._monthly_details,
            "get_savings_info": self._savings_info,
        }

    @staticmethod
    def tool_definitions() -> list[dict[str, Any]]:
        return FINANCE_TOOLS

    async def execute(self, name: str, arguments: dict[str, Any] | None = None) -> dict[str, Any]:
        """Run a tool and return a JSON-serializable payload.

        Errors are returned as {"error": ...} so they can be fed back to
        the model instead of failing the turn.
        """
        if self.user_id is None:
            return {"error": USER_NOT_IDENTIFIED}
        handler = self._handlers.get(name)
        if handler is None:
            logger.info("Refusing tool %r", name)
            return {"error": READ_ONLY_REFUSAL}
        try:
            return await handler(arguments or {})
        except Exception as exc:
            logger.error("Error inside tool %s: %s", name, exc)
            return {"error": str(exc) or "Error running the query."}

    async def _financial_summary(self, arguments: dict[str, Any]) -> dict[str, Any]:
        incomes = await self.gateway.select(
            INCOMES, columns=("amount",), filters=[Eq("user_id", self.user_id)]
        )
        expenses = await self.gateway.select(
            EXPENSES, columns=("amount",), filters=[Eq("user_id", self.user_id)]
        )
        total_incomes = _sum_amounts(incomes)
        total_expenses = _sum_amounts(expenses)
        return {
            "total_incomes": total_incomes,
            "total_expenses": total_expenses,
            "balance": total_incomes - total_expenses,
        }

    async def _monthly_details(self, arguments: dict[str, Any]) -> dict[str, Any]:
        try:
            month = int(arguments.get("month"))
            year = int(arguments.get("year"))
        except (TypeError, ValueError):
            return {"error": "Invalid month or year."}
        if not 1 <= month <= 12:
            return {"error": "Invalid month or year."}

        filters = [Eq("user_id", self.user_id), Eq("month", month), Eq("year", year)]
        columns = ("amount", "description", "occurred_on")
        incomes = await self.gateway.select(INCOMES, columns=columns, filters=filters)
        expenses = await self.gateway.select(EXPENSES, columns=columns, filters=filters)
        total_incomes = _sum_amounts(incomes)
        total_expenses = _sum_amounts(expenses)
        return {
            "month": month,
            "year": year,
            "incomes": [self._detail(row) for row in incomes],
            "expenses": [self._detail(row) for row in expenses],
            "total_incomes": total_incomes,
            "total_expenses": total_expenses,
            "net": total_incomes - total_expenses,
        }

    async def _savings_info(self, arguments: dict[str, Any]) -> dict[str, Any]:
        row = await self.gateway.select_one(
            USERS,
            columns=("savings_goal", "savings_rate"),
            filters=[Eq("id", self.user_id)],
        )
        settings = UserSettings.from_row(row)
        return {"savings_goal": settings.savings_goal, "savings_rate": settings.savings_rate}

    @staticmethod
    def _detail(row: dict[str, Any]) -> dict[str, Any]:
        return {
            "amount": to_decimal(row.get("amount")),
            "description": row.get("description") or "",
            "date": row.get("occurred_on"),
        }


@dataclass(frozen=True)
class ToolCall:
    id: str
    name: str
    arguments: str


@dataclass(frozen=True)
class Completion:
    content: str | None
    tool_calls: list[ToolCall] = field(default_factory=list)


class InferenceClient(ABC):
    """Chat completion endpoint with function calling."""

    @abstractmethod
    async def create_completion(
        self,
        messages: list[dict[str, Any]],
        model: str,
        tools: list[dict[str, Any]] | None = None,
        tool_choice: str | None = None,
    ) -> Completion:
        """Return the first choice of a chat completion."""


class OpenAICompatibleClient(InferenceClient):
    """Inference client for any OpenAI-compatible endpoint (Groq by default)."""

    def __init__(self, api_key: str, base_url: str = DEFAULT_BASE_URL) -> None:
        self._client = openai.AsyncOpenAI(api_key=api_key, base_url=base_url)

    async def create_completion(
        self,
        messages: list[dict[str, Any]],
        model: str,
        tools: list[dict[str, Any]] | None = None,
        tool_choice: str | None = None,
    ) -> Completion:
        kwargs: dict[str, Any] = {"messages": messages, "model": model}
        if tools:
            kwargs["tools"] = tools
        if tool_choice:
            kwargs["tool_choice"] = tool_choice
        try:
            response = await self._client.chat.completions.create(**kwargs)
        except openai.APIStatusError as exc:
            raise InferenceError(str(exc.message), status=exc.status_code) from exc
        except openai.OpenAIError as exc:
            raise InferenceError(str(exc)) from exc

        message = response.choices[0].message
        tool_calls = [
            ToolCall(id=call.id, name=call.function.name, arguments=call.function.arguments or "{}")
            for call in (message.tool_calls or [])
        ]
        return Completion(content=message.content, tool_calls=tool_calls)


class AssistantState(Enum):
    IDLE = "idle"
    AWAITING_MODEL = "awaiting_model"
    EXECUTING_TOOLS = "executing_tools"
    RESPONDING = "responding"


def build_system_prompt(today: dt.date, currency_label: str) -> str:
    return (
        "You are a personal finance assistant called FinTrack Assistant.\n"
        f"Today is {today.strftime('%A, %B %d, %Y')}.\n"
        "Your goal is to help the user understand their finances using the available tools.\n"
        "IMPORTANT: ALWAYS answer BRIEFLY, DIRECTLY and CONCISELY. Go straight to the answer.\n"
        "DO NOT USE TABLES OR COMPLEX FORMATTING. Answer in plain running text, for example: "
        f"\"Your incomes this month are {currency_label} X coming from Y\".\n"
        f"NOTE: The currency is {currency_label}. Always use {currency_label}.\n"
        "CRITICAL: You can NOT create, edit or delete data. You can only QUERY information. "
        "If the user asks to change something, kindly tell them you have no write permissions.\n"
        "SAVINGS: If the user asks how much they are saving this month, call "
        "'get_monthly_details' for the current month, add the incomes, subtract the "
        "expenses and report the result."
    )


class FinanceAssistant:
    """Single-user chat session over the tool bridge.

    A turn runs at most one round of tool execution: the model response that
    follows the tool results is final even if it asks for more tools.
    """

    def __init__(
        self,
        bridge: AssistantToolBridge,
        inference: InferenceClient | None,
        api_key: str | None,
        model: str = DEFAULT_MODEL,
        currency_label: str = DEFAULT_CURRENCY_LABEL,
        today: Callable[[], dt.date] = dt.date.today,
    ) -> None:
        self.bridge = bridge
        self.inference = inference
        self.api_key = api_key
        self.model = model
        self.currency_label = currency_label
        self._today = today
        self.state = AssistantState.IDLE
        self.history: list[dict[str, str]] = []

    @property
    def is_configured(self) -> bool:
        return (
            self.inference is not None
            and self.api_key is not None
            and self.api_key.strip() not in PLACEHOLDER_API_KEYS
        )

    async def send(self, text: str) -> str:
        """Answer one user message and return the assistant reply."""
        text = (text or "").strip()
        if not text:
            raise ValidationError("Message is required")
        if not self.is_configured:
            return MISSING_KEY_MESSAGE

        user_message = {"role": "user", "content": text}
        messages: list[dict[str, Any]] = [
            {"role": "system", "content": build_system_prompt(self._today(), self.currency_label)},
            *self.history,
            user_message,
        ]
        try:
            reply = await self._run_turn(messages)
        except InferenceError as exc:
            logger.error("Assistant request failed: %s", exc)
            reply = AUTH_ERROR_MESSAGE if exc.status == 401 else f"Error: {exc.message}"
            self.state = AssistantState.IDLE
            return reply

        self.history.extend([user_message, {"role": "assistant", "content": reply}])
        self.state = AssistantState.IDLE
        return reply

    def reset(self) -> None:
        self.history.clear()
        self.state = AssistantState.IDLE

    async def _run_turn(self, messages: list[dict[str, Any]]) -> str:
        self.state = AssistantState.AWAITING_MODEL
        completion = await self.inference.create_completion(
            messages,
            model=self.model,
            tools=self.bridge.tool_definitions(),
            tool_choice="auto",
        )

        if completion.tool_calls:
            self.state = AssistantState.EXECUTING_TOOLS
            tool_messages = [*messages, self._assistant_tool_message(completion)]
            for call in completion.tool_calls:
                arguments = self._parse_arguments(call.arguments)
                logger.info("Assistant calling tool %s %s", call.name, arguments)
                result = await self.bridge.execute(call.name, arguments)
                tool_messages.append(
                    {
                        "role": "tool",
                        "tool_call_id": call.id,
                        "name": call.name,
                        "content": json.dumps(result, default=_json_default),
                    }
                )
            self.state = AssistantState.AWAITING_MODEL
            completion = await self.inference.create_completion(tool_messages, model=self.model)

        self.state = AssistantState.RESPONDING
        return completion.content or EMPTY_RESPONSE_MESSAGE

    @staticmethod
    def _assistant_tool_message(completion: Completion) -> dict[str, Any]:
        return {
            "role": "assistant",
            "content": completion.content or "",
            "tool_calls": [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {"name": call.name, "arguments": call.arguments},
                }
                for call in completion.tool_calls
            ],
        }

    @staticmethod
    def _parse_arguments(raw: str) -> dict[str, Any]:
        try:
            parsed = json.loads(raw or "{}")
        except json.JSONDecodeError:
            return {}
        return parsed if isinstance(parsed, dict) else {}
