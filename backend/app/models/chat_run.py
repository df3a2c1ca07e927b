"""Assistant run log; rows are inserted once and never updated."""

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text

from backend.app.core.time import utc_now
from backend.app.db.base_class import Base


class ChatRun(Base):
    __tablename__ = "chat_runs"
    __table_args__ = (Index("ix_chat_runs_owner_conversation", "owner_id", "conversation_id"),)

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    conversation_id = Column(String(64), nullable=False)
    kind = Column(String(32), nullable=False, default="chat")
    model = Column(String(64), nullable=False)
    input = Column(Text, nullable=False)
    output = Column(Text, nullable=True)
    token_usage = Column(Integer, nullable=True)
    status = Column(String(20), nullable=False)
    error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
