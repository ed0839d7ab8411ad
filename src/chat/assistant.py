# src/chat/assistant.py — v1
"""Invoice Q&A assistant over a caller-supplied invoice list.

Conversation state lives in ConversationStore, keyed by session id.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Sequence
from pathlib import Path

from pydantic import BaseModel

from invoicex.chat.conversation_store import ConversationStore
from invoicex.core.models import ExtractedResult, TokenUsage, UsageEnvelope
from invoicex.llm.base_client import BaseLLMClient, EmptyCompletionError
from invoicex.llm.models import Message
from invoicex.llm.retry import LLMRetryExhausted, with_retry
from invoicex.tracking.cost_calculator import CostModel

logger = logging.getLogger(__name__)

_PROMPT_PATH = Path(__file__).parent / "prompts" / "invoice_assistant.txt"
_NO_RESPONSE = "I apologize, but I could not generate a response."

_INVOICE_REF = re.compile(r"\binvoice\s+(?:number\s+|no\.?\s*)?#?([A-Za-z0-9-]*\d[A-Za-z0-9-]*)", re.IGNORECASE)
_HASH_REF = re.compile(r"#([A-Za-z0-9-]*\d[A-Za-z0-9-]*)")


class AssistantReply(BaseModel):
    """Assistant answer plus the usage of the call that produced it."""

    content: str
    usage: UsageEnvelope


def find_invoice_number(text: str) -> str | None:
    """Invoice number mentioned in a question ("invoice INV-123", "#123"), if any."""
    match = _INVOICE_REF.search(text) or _HASH_REF.search(text)
    return match.group(1) if match else None


def format_invoices(invoices: Sequence[ExtractedResult]) -> str:
    """Render invoices as JSON for the system prompt, amounts in major units."""
    rows = [
        {
            "invoiceNumber": inv.invoice_number,
            "customerName": inv.customer_name,
            "vendorName": inv.vendor_name,
            "invoiceDate": inv.invoice_date.isoformat(),
            "dueDate": inv.due_date.isoformat() if inv.due_date else None,
            "amount": inv.amount / 100,
            "currency": inv.currency,
        }
        for inv in invoices
    ]
    return json.dumps(rows, indent=2)


class InvoiceAssistant:
    """Answers questions about invoices, one session at a time."""

    def __init__(
        self,
        llm: BaseLLMClient,
        store: ConversationStore,
        cost_model: CostModel,
        max_tokens: int = 500,
        temperature: float = 0.7,
    ) -> None:
        self._llm = llm
        self._store = store
        self._cost_model = cost_model
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._prompt_template: str | None = None

    def close(self) -> None:
        self._store.close()

    def _load_prompt(self) -> str:
        if self._prompt_template is None:
            self._prompt_template = _PROMPT_PATH.read_text(encoding="utf-8")
        return self._prompt_template

    async def ask(
        self,
        session_id: str,
        question: str,
        invoices: Sequence[ExtractedResult] = (),
    ) -> AssistantReply:
        """Answer a question in the context of a session.

        Raises:
            ValueError: Empty question.
            LLMRetryExhausted: The LLM call failed.
        """
        if not question.strip():
            raise ValueError("question must not be empty")

        state = await self._store.get_session(session_id)
        current = find_invoice_number(question) or state.current_invoice_number
        if current != state.current_invoice_number:
            await self._store.set_current_invoice(session_id, current)
            logger.debug("Session %s now discussing invoice %s", session_id, current)

        system = self._load_prompt().format(
            invoices=format_invoices(invoices),
            current_invoice=current or "none",
        )
        messages = [*state.messages, Message(role="user", content=question)]

        try:
            response = await with_retry(
                self._llm.complete,
                messages=messages,
                system=system,
                max_tokens=self._max_tokens,
                temperature=self._temperature,
                operation="invoice_assistant",
            )
        except LLMRetryExhausted as e:
            if not isinstance(e.last_error, EmptyCompletionError):
                raise
            content, usage = _NO_RESPONSE, TokenUsage()
        else:
            content = response.content
            usage = TokenUsage(
                prompt_tokens=response.input_tokens,
                completion_tokens=response.output_tokens,
                total_tokens=response.total_tokens,
                cost=self._cost_model.cost(
                    response.input_tokens, response.output_tokens, response.model
                ),
                model=response.model,
            )

        await self._store.append(session_id, "user", question)
        await self._store.append(session_id, "assistant", content)
        logger.info(
            "Assistant answered in session %s (%d tokens, $%.6f)",
            session_id, usage.total_tokens, usage.cost,
        )
        return AssistantReply(content=content, usage=UsageEnvelope.for_miss(usage))
