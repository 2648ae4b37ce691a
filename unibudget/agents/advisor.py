"""
Spending Advisor

Asks Gemini for a short, student-friendly read of recent spending.

BOUNDARIES:
- The model only sees the most recent transactions (date, type, amount,
  category, method). Notes and IDs are never sent.
- The advisor NEVER writes to the ledger.
- Any failure (missing API key, network, quota) degrades to a static
  fallback message. Advice is optional; the ledger works without it.
"""

import json
from typing import Any, Optional, Sequence

import google.generativeai as genai
import structlog

from unibudget.config import get_settings
from unibudget.models.audit import AuditEventBuilder
from unibudget.models.ledger import Transaction


logger = structlog.get_logger(__name__)

FALLBACK_ADVICE = "Make sure your API key is set correctly to get smart insights! 🧠"
EMPTY_ADVICE = "Could not generate advice at the moment."


def advisor_payload(transactions: Sequence[Transaction], window: int) -> list[dict]:
    """The slice of history the model is allowed to see."""
    return [
        {
            "date": t.date.date().isoformat(),
            "type": t.type.value,
            "amount": float(t.amount),
            "category": t.category,
            "method": t.method.value,
        }
        for t in list(transactions)[:window]
    ]


class FinancialAdvisor:
    """
    Gemini-backed spending advisor.

    The generative model is created on first use so a missing API key
    only affects advice, never start-up. Tests inject a model directly.
    """

    def __init__(
        self,
        model: Optional[Any] = None,
        transaction_window: Optional[int] = None,
        currency_symbol: Optional[str] = None,
        audit_logger: Optional[Any] = None,
    ):
        self._model = model
        self._window = transaction_window
        self._currency = currency_symbol
        self._audit = audit_logger

    def _configure_genai(self) -> Any:
        """Configure Google Generative AI."""
        settings = get_settings().gemini
        genai.configure(api_key=settings.api_key)
        return genai.GenerativeModel(
            model_name=settings.model_name,
            generation_config={
                "temperature": settings.temperature,
                "max_output_tokens": settings.max_tokens,
            }
        )

    def _get_model(self) -> Any:
        if self._model is None:
            self._model = self._configure_genai()
        return self._model

    @property
    def transaction_window(self) -> int:
        if self._window is None:
            self._window = get_settings().app.advisor_transaction_window
        return self._window

    @property
    def currency_symbol(self) -> str:
        if self._currency is None:
            self._currency = get_settings().app.currency_symbol
        return self._currency

    def build_prompt(self, transactions: Sequence[Transaction]) -> str:
        recent = advisor_payload(transactions, self.transaction_window)
        return f"""You are a friendly, cool financial advisor for a university student.
The currency is {self.currency_symbol}.
Analyze the following recent transaction history (JSON format):
{json.dumps(recent)}

1. Give a very brief summary of spending habits.
2. Identify one area where they are spending too much (if any).
3. Give one actionable, student-friendly tip to save money based on this data.

Keep the tone encouraging, concise, and formatted with simple Markdown. Use emojis."""

    async def get_advice(self, transactions: Sequence[Transaction]) -> str:
        """
        Generate advice for the given transactions (newest first).

        Returns the model's text, or a fallback message on failure.
        """
        try:
            prompt = self.build_prompt(transactions)
            response = await self._get_model().generate_content_async(prompt)
            text = (response.text or "").strip()
        except Exception as e:
            logger.warning("advisor_failed", error=str(e))
            if self._audit is not None:
                await self._audit.log(AuditEventBuilder.advisor_failed(str(e)))
            return FALLBACK_ADVICE

        return text or EMPTY_ADVICE
