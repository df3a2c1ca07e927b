"""Assistant routes: free-form chat and invoice drafting from chat."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.app.core.security import get_current_user
from backend.app.db.session import get_db
from backend.app.models.user import User
from backend.app.schemas.assistant import ChatRequest, ChatResponse, ConversationRead, InvoiceAgentResponse
from backend.app.services import assistant

router = APIRouter(prefix="/ai", tags=["ai"])


@router.post("/invoice", response_model=InvoiceAgentResponse)
async def draft_invoice(
    payload: ChatRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    generator: assistant.TextGenerator = Depends(assistant.get_text_generator),
):
    return assistant.create_invoice_from_message(
        db, current_user, payload.message, conversation_id=payload.conversation_id, generator=generator
    )


@router.post("/chat", response_model=ChatResponse)
async def chat(
    payload: ChatRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    generator: assistant.TextGenerator = Depends(assistant.get_text_generator),
):
    return assistant.chat(db, current_user, payload.message, conversation_id=payload.conversation_id, generator=generator)


@router.get("/chat/{conversation_id}", response_model=ConversationRead)
async def get_conversation(
    conversation_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return assistant.list_conversation(db, current_user.id, conversation_id)
