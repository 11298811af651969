from sqlalchemy import Column, Integer, DateTime, ForeignKey, Boolean, Enum, JSON, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from quizpath.core.database import Base
from quizpath.core.constants import ValidationStatusEnum

class Submission(Base):
    __tablename__ = "submissions"

    id = Column(Integer, primary_key=True, index=True)
    attempt_id = Column(Integer, ForeignKey("attempts.id"), nullable=False, index=True)
    question_id = Column(Integer, ForeignKey("questions.id"), nullable=False, index=True)
    user_answer = Column(JSON, nullable=True) # String, number or list of selections
    validation_status = Column(
        Enum(ValidationStatusEnum, values_callable=lambda enum: [member.value for member in enum]),
        nullable=False,
        default=ValidationStatusEnum.PENDING,
    )
    validation_result = Column(JSON, nullable=True)
    hints_used = Column(JSON, nullable=True) # Hint indices
    time_spent = Column(Integer, nullable=True) # Seconds
    flagged_for_review = Column(Boolean, default=False)
    review_notes = Column(Text, nullable=True)
    submitted_at = Column(DateTime(timezone=True), server_default=func.now())
    validated_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    attempt = relationship("Attempt", back_populates="submissions")
    question = relationship("Question", back_populates="submissions")

    __table_args__ = (
        UniqueConstraint("attempt_id", "question_id", name="uq_submissions_attempt_question"),
    )
