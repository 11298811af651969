from typing import List, Optional
from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class InvalidStateError(HTTPException):
    """The operation is not allowed in the attempt's (or submission's) current state."""

    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class StructuralError(HTTPException):
    """Path logic failed structural validation. Raised at authoring time."""

    def __init__(self, errors: List[str], detail: Optional[str] = None):
        self.errors = list(errors)
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail or f"Invalid path logic: {'; '.join(self.errors)}",
        )


class PathInvariantError(RuntimeError):
    """A validated graph was found broken during traversal."""


class DependencyFailure(Exception):
    """An external collaborator (the AI oracle) timed out, errored or answered garbage."""
