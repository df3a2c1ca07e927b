"""Invoicing assistant backed by an external text-generation service.

Every exchange is written to the ``chat_runs`` log, including failures, so that
conversations can be replayed and audited. Invoice drafting is best effort: it only
acts when the model returns a readable extraction with enough detail.
"""

import json
import logging
import uuid
from datetime import date
from typing import List, Optional, Protocol, Tuple

import requests
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from backend.app.core.errors import UpstreamServiceError
from backend.app.core.settings import get_settings
from backend.app.core.time import utc_today
from backend.app.models.chat_run import ChatRun
from backend.app.models.user import User
from backend.app.schemas.assistant import InvoiceExtraction
from backend.app.schemas.customer import CustomerCreate
from backend.app.schemas.invoice import InvoiceCreate
from backend.app.schemas.invoice_item import LineItemIn
from backend.app.services.currency import round_half_up
from backend.app.services.customers import create_customer, get_customer_by_name
from backend.app.services.ledger import create_invoice, generate_invoice_number

logger = logging.getLogger(__name__)

EXTRACTION_PROMPT = (
    "Extract invoice creation details from the user message. If the user wants to create an invoice, "
    "intent is invoice. Otherwise intent is other. Return ONLY JSON with keys: intent, customerName, "
    "amount, title, currency. amount must be a number. currency must be a 3-letter code when present."
)
CHAT_PROMPT = (
    "You are an expert invoicing assistant. Help with invoices, customers, payments, and analytics. "
    "Keep answers concise and actionable."
)
UNREADABLE_MESSAGE = "I could not read the invoice details. Please include company name, amount, and title."
MISSING_DETAIL_MESSAGE = "Please include company name, amount, and invoice title."
NOT_INVOICE_MESSAGE = "Not an invoice request."

KIND_CHAT = "chat"
KIND_INVOICE_DRAFT = "invoice_draft"


class TextGenerator(Protocol):
    model: str

    def generate(self, system: str, messages: List[dict]) -> Tuple[str, Optional[int]]:
        """Return the completion text and total token usage (if reported)."""


class OpenAIChatClient:
    """Client for an OpenAI-compatible ``/chat/completions`` endpoint."""

    def __init__(self, api_url: Optional[str] = None, api_key: Optional[str] = None, model: Optional[str] = None):
        settings = get_settings()
        self.api_url = (api_url or settings.llm_api_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.llm_api_key
        self.model = model or settings.llm_model
        self.timeout = settings.llm_timeout_seconds

    def generate(self, system: str, messages: List[dict]) -> Tuple[str, Optional[int]]:
        body = {
            "model": self.model,
            "messages": [{"role": "system", "content": system}, *messages],
        }
        try:
            response = requests.post(
                f"{self.api_url}/chat/completions",
                json=body,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
            text = data["choices"][0]["message"]["content"] or ""
        except (requests.RequestException, KeyError, IndexError, ValueError) as exc:
            logger.exception("Text generation request failed")
            raise UpstreamServiceError("Text generation failed", reason=str(exc)) from exc
        usage = (data.get("usage") or {}).get("total_tokens")
        return text, usage


def get_text_generator() -> TextGenerator:
    return OpenAIChatClient()


def new_conversation_id() -> str:
    return str(uuid.uuid4())


def record_run(
    db: Session,
    *,
    owner_id: int,
    conversation_id: str,
    model: str,
    input: str,
    status: str,
    kind: str = KIND_CHAT,
    output: Optional[str] = None,
    token_usage: Optional[int] = None,
    error: Optional[str] = None,
) -> ChatRun:
    run = ChatRun(
        owner_id=owner_id,
        conversation_id=conversation_id,
        kind=kind,
        model=model,
        input=input,
        output=output,
        token_usage=token_usage,
        status=status,
        error=error,
    )
    db.add(run)
    db.commit()
    db.refresh(run)
    return run


def list_runs(db: Session, owner_id: int, conversation_id: str) -> List[ChatRun]:
    return (
        db.query(ChatRun)
        .filter(ChatRun.owner_id == owner_id, ChatRun.conversation_id == conversation_id)
        .order_by(ChatRun.created_at.asc(), ChatRun.id.asc())
        .all()
    )


def build_messages(runs: List[ChatRun]) -> List[dict]:
    messages = []
    for run in runs:
        if run.input:
            messages.append({"role": "user", "content": run.input})
        if run.output:
            messages.append({"role": "assistant", "content": run.output})
    return messages


def list_conversation(db: Session, owner_id: int, conversation_id: str) -> dict:
    messages = build_messages(list_runs(db, owner_id, conversation_id))
    return {
        "conversation_id": conversation_id,
        "messages": [{"id": f"{conversation_id}-{index}", **message} for index, message in enumerate(messages)],
    }


def normalize_currency(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    code = value.strip().upper()
    return code if len(code) == 3 and code.isalpha() else None


def parse_extraction(text: str) -> Optional[InvoiceExtraction]:
    """Read the JSON object between the first ``{`` and the last ``}`` of a completion."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        return None
    try:
        return InvoiceExtraction.model_validate(json.loads(text[start : end + 1]))
    except (ValueError, PydanticValidationError):
        return None


def _run_failed(db: Session, owner: User, conversation_id: str, model: str, message: str, kind: str, exc: Exception):
    db.rollback()
    record_run(
        db,
        owner_id=owner.id,
        conversation_id=conversation_id,
        model=model,
        input=message,
        status="failed",
        kind=kind,
        error=str(exc) or "Assistant request failed",
    )


def create_invoice_from_message(
    db: Session,
    owner: User,
    message: str,
    conversation_id: Optional[str] = None,
    generator: Optional[TextGenerator] = None,
    today: Optional[date] = None,
) -> dict:
    generator = generator or get_text_generator()
    conversation_id = conversation_id or new_conversation_id()

    def reply(text: str, intent: str = "invoice", created: bool = False, invoice: Optional[dict] = None) -> dict:
        record_run(
            db,
            owner_id=owner.id,
            conversation_id=conversation_id,
            model=generator.model,
            input=message,
            output=text,
            status="completed",
            kind=KIND_INVOICE_DRAFT,
        )
        logger.info("Assistant invoice request in %s: intent=%s created=%s", conversation_id, intent, created)
        return {
            "conversation_id": conversation_id,
            "created": created,
            "intent": intent,
            "message": text,
            "invoice": invoice,
        }

    try:
        text, _ = generator.generate(EXTRACTION_PROMPT, [{"role": "user", "content": message}])
        extraction = parse_extraction(text)
        if extraction is None:
            return reply(UNREADABLE_MESSAGE)
        if extraction.intent == "other":
            return reply(NOT_INVOICE_MESSAGE, intent="other")

        customer_name = (extraction.customer_name or "").strip()
        title = (extraction.title or "").strip()
        amount = extraction.amount
        if not customer_name or not title or not amount or amount <= 0:
            return reply(MISSING_DETAIL_MESSAGE)

        customer = get_customer_by_name(db, owner.id, customer_name)
        if customer is None:
            customer = create_customer(db, owner.id, CustomerCreate(name=customer_name))

        currency = normalize_currency(extraction.currency) or normalize_currency(owner.default_currency) or "USD"
        amount_cents = round_half_up(amount * 100)
        invoice_number = generate_invoice_number()
        invoice = create_invoice(
            db,
            owner.id,
            InvoiceCreate(
                customer_id=customer.id,
                invoice_number=invoice_number,
                issue_date=today or utc_today(),
                currency=currency,
                line_items=[LineItemIn(description=title, quantity=1, unit_price_cents=amount_cents)],
            ),
        )
    except Exception as exc:
        logger.exception("Assistant invoice request failed in %s", conversation_id)
        _run_failed(db, owner, conversation_id, generator.model, message, KIND_INVOICE_DRAFT, exc)
        if isinstance(exc, UpstreamServiceError):
            raise
        raise UpstreamServiceError("Invoice agent failed", conversation_id=conversation_id) from exc

    return reply(
        f"Invoice {invoice_number} created for {customer_name}.",
        created=True,
        invoice={
            "id": invoice.id,
            "invoice_number": invoice_number,
            "customer_name": customer_name,
            "title": title,
            "total_cents": invoice.total_cents,
            "currency": currency,
        },
    )


def chat(
    db: Session,
    owner: User,
    message: str,
    conversation_id: Optional[str] = None,
    generator: Optional[TextGenerator] = None,
) -> dict:
    generator = generator or get_text_generator()
    conversation_id = conversation_id or new_conversation_id()
    try:
        messages = build_messages(list_runs(db, owner.id, conversation_id))
        messages.append({"role": "user", "content": message})
        text, token_usage = generator.generate(CHAT_PROMPT, messages)
    except Exception as exc:
        logger.exception("Assistant chat failed in %s", conversation_id)
        _run_failed(db, owner, conversation_id, generator.model, message, KIND_CHAT, exc)
        if isinstance(exc, UpstreamServiceError):
            raise
        raise UpstreamServiceError("AI request failed", conversation_id=conversation_id) from exc

    record_run(
        db,
        owner_id=owner.id,
        conversation_id=conversation_id,
        model=generator.model,
        input=message,
        output=text,
        token_usage=token_usage,
        status="completed",
    )
    return {"conversation_id": conversation_id, "message": text}
