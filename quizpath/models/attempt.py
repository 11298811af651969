from sqlalchemy import Column, Integer, DateTime, ForeignKey, Float, Enum, JSON, Text, Index, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from quizpath.core.database import Base
from quizpath.core.constants import AttemptStatusEnum, AttemptResultEnum

class Attempt(Base):
    __tablename__ = "attempts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    questionnaire_id = Column(Integer, ForeignKey("questionnaires.id"), nullable=False)
    status = Column(
        Enum(AttemptStatusEnum, values_callable=lambda enum: [member.value for member in enum]),
        nullable=False,
        default=AttemptStatusEnum.IN_PROGRESS,
    )
    result = Column(
        Enum(AttemptResultEnum, values_callable=lambda enum: [member.value for member in enum]),
        nullable=False,
        default=AttemptResultEnum.PENDING,
    )
    score = Column(Float, nullable=False, default=0)
    max_score = Column(Float, nullable=False, default=0)
    percentage = Column(Float, nullable=False, default=0)
    path_taken = Column(JSON, nullable=False, default=list) # Question ids in the order they were answered
    time_spent = Column(Integer, nullable=False, default=0) # Seconds
    attempt_metadata = Column("metadata", JSON, nullable=True)
    feedback = Column(Text, nullable=True)
    ai_generated_feedback = Column(Text, nullable=True)
    started_at = Column(DateTime(timezone=True), server_default=func.now())
    completed_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    questionnaire = relationship("Questionnaire", back_populates="attempts")
    submissions = relationship(
        "Submission",
        back_populates="attempt",
        cascade="all, delete-orphan",
        order_by="Submission.id",
    )

    __table_args__ = (
        Index("ix_attempts_user_questionnaire", "user_id", "questionnaire_id"),
        # At most one in-progress attempt per user and questionnaire
        Index(
            "uq_attempts_in_progress",
            "user_id",
            "questionnaire_id",
            unique=True,
            sqlite_where=text("status = 'in_progress'"),
            postgresql_where=text("status = 'in_progress'"),
        ),
    )
