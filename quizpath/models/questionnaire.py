from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, Float, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from quizpath.core.database import Base

class Questionnaire(Base):
    __tablename__ = "questionnaires"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, index=True, nullable=False)
    description = Column(Text, nullable=True)
    path_logic = Column(JSON, nullable=True) # List of path nodes; linear question order when empty
    points = Column(Float, nullable=True) # Explicit max score, overrides the summed submission max
    pass_percentage = Column(Float, nullable=True)
    pass_points = Column(Float, nullable=True)
    pass_text = Column(Text, nullable=True)
    fail_text = Column(Text, nullable=True)
    time_limit = Column(Integer, nullable=True) # Seconds
    is_active = Column(Boolean, default=True)
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)
    allow_retake = Column(Boolean, default=False)
    max_retakes = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    questions = relationship(
        "Question",
        back_populates="questionnaire",
        cascade="all, delete-orphan",
        order_by="(Question.position, Question.id)",
    )
    attempts = relationship("Attempt", back_populates="questionnaire", cascade="all, delete-orphan")
