# models/interaction.py
import enum

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Column,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .base import Base


class InteractionStatus(str, enum.Enum):
    PENDING = "PENDING"      # unreciprocated like
    ACCEPTED = "ACCEPTED"    # mutual match
    REJECTED = "REJECTED"    # pass


class InteractionAction(str, enum.Enum):
    LIKE = "LIKE"
    PASS = "PASS"


class Interaction(Base):
    """One directed like or pass. A mutual match is the original liker's row flipped to ACCEPTED."""

    __tablename__ = "interactions"

    id = Column(BigInteger, primary_key=True, index=True)
    initiator_id = Column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    receiver_id = Column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(
        SAEnum(InteractionStatus, name="interaction_status"),
        default=InteractionStatus.PENDING,
        nullable=False,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    initiator = relationship("User", foreign_keys=[initiator_id], backref="interactions_initiated")
    receiver = relationship("User", foreign_keys=[receiver_id], backref="interactions_received")

    __table_args__ = (
        UniqueConstraint("initiator_id", "receiver_id", name="uq_interaction_initiator_receiver"),
        CheckConstraint("initiator_id <> receiver_id", name="ck_interaction_not_self"),
    )

    def __repr__(self):
        return f"<Interaction {self.initiator_id}→{self.receiver_id} {self.status.value}>"
