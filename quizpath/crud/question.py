from sqlalchemy.orm import Session
from typing import List, Optional

from quizpath.crud.base import CRUDBase
from quizpath.models.question import Question
from quizpath.schemas.question import QuestionCreate, QuestionUpdate

class CRUDQuestion(CRUDBase[Question, QuestionCreate, QuestionUpdate]):

    def get_by_questionnaire(self, db: Session, questionnaire_id: int) -> List[Question]:
        return (
            db.query(Question)
            .filter(Question.questionnaire_id == questionnaire_id)
            .order_by(Question.position, Question.id)
            .all()
        )

    def get_in_questionnaire(self, db: Session, questionnaire_id: int, question_id: int) -> Optional[Question]:
        return (
            db.query(Question)
            .filter(Question.questionnaire_id == questionnaire_id)
            .filter(Question.id == question_id)
            .first()
        )


question = CRUDQuestion(Question)
