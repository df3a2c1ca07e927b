"""Assistant request/response schemas and the extraction contract."""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ChatRequest(BaseModel):
    message: str = Field(min_length=1)
    conversation_id: Optional[str] = None


class InvoiceExtraction(BaseModel):
    intent: Literal["invoice", "other"]
    customer_name: Optional[str] = Field(default=None, alias="customerName")
    amount: Optional[float] = None
    title: Optional[str] = None
    currency: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class DraftedInvoice(BaseModel):
    id: int
    invoice_number: str
    customer_name: str
    title: str
    total_cents: int
    currency: str


class InvoiceAgentResponse(BaseModel):
    conversation_id: str
    created: bool
    intent: Literal["invoice", "other"]
    message: str
    invoice: Optional[DraftedInvoice] = None


class ChatResponse(BaseModel):
    conversation_id: str
    message: str


class ChatMessage(BaseModel):
    id: str
    role: Literal["user", "assistant"]
    content: str


class ConversationRead(BaseModel):
    conversation_id: str
    messages: List[ChatMessage]
