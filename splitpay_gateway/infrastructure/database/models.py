"""SQLAlchemy ORM models for split flow state"""

import uuid
from sqlalchemy import Column, BigInteger, DateTime, Text, JSON
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class SplitFlowRecord(Base):
    """State of one split flow between HTTP calls"""

    __tablename__ = "split_flow"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    checkout_token = Column(Text, nullable=True, index=True)
    current_user_id = Column(Text, nullable=False, index=True)
    total_cents = Column(BigInteger, nullable=False)
    currency = Column(Text, nullable=False, default="USD")
    mode = Column(Text, nullable=False, default="even")
    mode_before_adjust = Column(Text, nullable=True)
    participants = Column(JSON, nullable=False)  # [{id, display_name, is_current_user, logo}]
    shares = Column(JSON, nullable=False)  # [[participant_id, cents], ...] in participant order
    edits = Column(JSON, nullable=True)  # {participant_id: cents} while adjusting
    forward_context = Column(JSON, nullable=True)  # params carried to the next screen
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
