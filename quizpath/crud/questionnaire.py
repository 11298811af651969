from sqlalchemy.orm import Session, selectinload
from typing import Optional

from quizpath.crud.base import CRUDBase
from quizpath.models.questionnaire import Questionnaire
from quizpath.schemas.questionnaire import QuestionnaireCreate, QuestionnaireUpdate

class CRUDQuestionnaire(CRUDBase[Questionnaire, QuestionnaireCreate, QuestionnaireUpdate]):

    def get_with_questions(self, db: Session, id: int) -> Optional[Questionnaire]:
        return (
            db.query(Questionnaire)
            .options(selectinload(Questionnaire.questions))
            .filter(Questionnaire.id == id)
            .first()
        )


questionnaire = CRUDQuestionnaire(Questionnaire)
