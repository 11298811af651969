from sqlalchemy import Column, Integer, DateTime, ForeignKey, Enum, Float, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from quizpath.core.database import Base
from quizpath.core.constants import CheckTypeEnum

class Question(Base):
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    questionnaire_id = Column(Integer, ForeignKey("questionnaires.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    check_type = Column(
        Enum(CheckTypeEnum, values_callable=lambda enum: [member.value for member in enum]),
        nullable=False,
        default=CheckTypeEnum.EXACT,
    )
    check_config = Column(JSON, nullable=True) # Keywords or AI settings depending on check_type
    points = Column(Float, nullable=False, default=1)
    content = Column(JSON, nullable=False) # Text, candidate answers, hints, feedback
    total_attempts = Column(Integer, nullable=False, default=0)
    correct_attempts = Column(Integer, nullable=False, default=0)
    average_score = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    questionnaire = relationship("Questionnaire", back_populates="questions")
    submissions = relationship("Submission", back_populates="question", cascade="all, delete-orphan")
