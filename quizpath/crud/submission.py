from sqlalchemy.orm import Session, selectinload
from typing import List, Optional

from quizpath.crud.base import CRUDBase
from quizpath.models.submission import Submission
from quizpath.schemas.submission import SubmissionCreate, SubmissionUpdate

class CRUDSubmission(CRUDBase[Submission, SubmissionCreate, SubmissionUpdate]):

    def _query_with_relationships(self, db: Session):
        return db.query(Submission).options(
            selectinload(Submission.question),
            selectinload(Submission.attempt)
        )

    def get(self, db: Session, id: int) -> Optional[Submission]:
        return self._query_with_relationships(db).filter(Submission.id == id).first()

    def get_by_attempt_and_question(self, db: Session, attempt_id: int, question_id: int) -> Optional[Submission]:
        return (
            db.query(Submission)
            .filter(Submission.attempt_id == attempt_id)
            .filter(Submission.question_id == question_id)
            .first()
        )

    def get_all_by_attempt(self, db: Session, attempt_id: int) -> List[Submission]:
        return (
            self._query_with_relationships(db)
            .filter(Submission.attempt_id == attempt_id)
            .order_by(Submission.id)
            .all()
        )

    def get_flagged(self, db: Session, skip: int = 0, limit: int = 100) -> List[Submission]:
        return (
            self._query_with_relationships(db)
            .filter(Submission.flagged_for_review == True)
            .order_by(Submission.submitted_at)
            .offset(skip)
            .limit(limit)
            .all()
        )


submission = CRUDSubmission(Submission)
