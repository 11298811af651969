from sqlalchemy.orm import Session, selectinload
from typing import List, Optional

from quizpath.core.constants import AttemptStatusEnum, AttemptResultEnum
from quizpath.crud.base import CRUDBase
from quizpath.models.attempt import Attempt
from quizpath.schemas.attempt import AttemptCreate, AttemptUpdate

class CRUDAttempt(CRUDBase[Attempt, AttemptCreate, AttemptUpdate]):

    def _query_with_relationships(self, db: Session):
        return db.query(Attempt).options(
            selectinload(Attempt.questionnaire),
            selectinload(Attempt.submissions)
        )

    def get(self, db: Session, id: int) -> Optional[Attempt]:
        return self._query_with_relationships(db).filter(Attempt.id == id).first()

    def get_by_user_and_questionnaire(self, db: Session, user_id: int, questionnaire_id: int,
                                      status: Optional[AttemptStatusEnum] = None) -> List[Attempt]:
        query = (
            self._query_with_relationships(db)
            .filter(Attempt.user_id == user_id)
            .filter(Attempt.questionnaire_id == questionnaire_id)
        )
        if status is not None:
            query = query.filter(Attempt.status == status)
        return query.order_by(Attempt.started_at.desc(), Attempt.id.desc()).all()

    def count_by_user_and_questionnaire(self, db: Session, user_id: int, questionnaire_id: int) -> int:
        return (
            db.query(Attempt)
            .filter(Attempt.user_id == user_id)
            .filter(Attempt.questionnaire_id == questionnaire_id)
            .count()
        )

    def get_filtered(self, db: Session, user_id: Optional[int] = None, questionnaire_id: Optional[int] = None,
                     status: Optional[AttemptStatusEnum] = None, result: Optional[AttemptResultEnum] = None,
                     skip: int = 0, limit: int = 100) -> List[Attempt]:
        query = self._query_with_relationships(db)
        if user_id is not None:
            query = query.filter(Attempt.user_id == user_id)
        if questionnaire_id is not None:
            query = query.filter(Attempt.questionnaire_id == questionnaire_id)
        if status is not None:
            query = query.filter(Attempt.status == status)
        if result is not None:
            query = query.filter(Attempt.result == result)
        return query.order_by(Attempt.started_at.desc(), Attempt.id.desc()).offset(skip).limit(limit).all()

    def get_completed_ranked(self, db: Session, questionnaire_id: int, limit: int = 10) -> List[Attempt]:
        return (
            db.query(Attempt)
            .filter(Attempt.questionnaire_id == questionnaire_id)
            .filter(Attempt.status == AttemptStatusEnum.COMPLETED)
            .order_by(Attempt.score.desc(), Attempt.time_spent.asc(), Attempt.id.asc())
            .limit(limit)
            .all()
        )


attempt = CRUDAttempt(Attempt)
