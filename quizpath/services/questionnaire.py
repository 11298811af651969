from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.orm import Session

from quizpath.core.exceptions import NotFoundError
from quizpath.crud.question import question as crud_question
from quizpath.crud.questionnaire import questionnaire as crud_questionnaire
from quizpath.models.questionnaire import Questionnaire
from quizpath.schemas.path import PathNode, PathValidationResult, QuestionPathInfo
from quizpath.services.path_graph import PathGraph, validate_path_logic
from quizpath.services.path_resolver import path_resolver


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; everything is stored as UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class QuestionnaireService:

    def get_questionnaire(self, db: Session, questionnaire_id: int) -> Questionnaire:
        questionnaire = crud_questionnaire.get(db, id=questionnaire_id)
        if not questionnaire:
            raise NotFoundError("Questionnaire not found.")
        return questionnaire

    def is_available(self, questionnaire: Questionnaire, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        if not questionnaire.is_active:
            return False
        if questionnaire.start_date and now < as_aware(questionnaire.start_date):
            return False
        if questionnaire.end_date and now > as_aware(questionnaire.end_date):
            return False
        return True

    def validate_path_logic(self, path_logic: List[Union[PathNode, Dict[str, Any]]]) -> PathValidationResult:
        return validate_path_logic(path_logic)

    def get_graph(self, questionnaire: Questionnaire) -> Optional[PathGraph]:
        if not questionnaire.path_logic:
            return None
        return PathGraph.build(questionnaire.path_logic)

    def get_question_order(self, db: Session, questionnaire_id: int) -> List[int]:
        return [q.id for q in crud_question.get_by_questionnaire(db, questionnaire_id=questionnaire_id)]

    def enumerate_paths(self, db: Session, questionnaire_id: int,
                        start_question_id: Optional[int] = None) -> List[List[int]]:
        questionnaire = self.get_questionnaire(db, questionnaire_id)
        graph = self.get_graph(questionnaire)
        if graph is not None:
            return path_resolver.enumerate_all_paths(graph, start_question_id)

        order = self.get_question_order(db, questionnaire_id)
        if start_question_id is None:
            return [order] if order else []
        if start_question_id not in order:
            raise NotFoundError(f"Question {start_question_id} is not part of this questionnaire.")
        return [order[order.index(start_question_id):]]

    def get_path_map(self, questionnaire: Questionnaire) -> Dict[int, QuestionPathInfo]:
        graph = self.get_graph(questionnaire)
        return graph.path_map if graph is not None else {}


questionnaire_service = QuestionnaireService()
