"""
Quiz Portal
Document repositories over the users, quizzes and attempts collections

Only the first equality criterion of a find() is sent to the database; any
further criteria are applied to the validated records in Python.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .database.models import Attempt, DocumentModel, Quiz, User, UserRole
from .exceptions import DatabaseException, MalformedRecordException, NotFoundException
from .schemas import AttemptRecord, Question, QuizRecord, UserRecord

# Configure logging
logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


class DocumentRepository(ABC, Generic[RecordT]):
    """Collection-level access returning validated records"""

    collection: str = "documents"

    @abstractmethod
    async def get(self, document_id: str) -> Optional[RecordT]:
        ...

    @abstractmethod
    async def add(self, **values: Any) -> RecordT:
        ...

    @abstractmethod
    async def update(self, document_id: str, **changes: Any) -> RecordT:
        ...

    @abstractmethod
    async def delete(self, document_id: str) -> bool:
        ...

    @abstractmethod
    async def list_all(self) -> List[RecordT]:
        ...

    @abstractmethod
    async def find(self, **equals: Any) -> List[RecordT]:
        ...

    async def require(self, document_id: str) -> RecordT:
        record = await self.get(document_id)
        if record is None:
            raise NotFoundException(
                message=f"{self.collection[:-1].title()} not found",
                resource_type=self.collection,
                resource_id=document_id
            )
        return record


class SQLAlchemyRepository(DocumentRepository[RecordT]):
    """Repository backed by one table on an AsyncSession"""

    model: Type[DocumentModel]
    record_class: Type[RecordT]

    def __init__(self, session: AsyncSession):
        self.session = session

    def to_record(self, row: DocumentModel) -> RecordT:
        try:
            return self.record_class.model_validate(row)
        except ValidationError as e:
            logger.error(f"Malformed {self.collection} document {row.id}: {e}")
            raise MalformedRecordException(self.collection, row.id, str(e)) from e

    def prepare(self, values: Dict[str, Any]) -> Dict[str, Any]:
        """Hook for turning record values into column values"""
        return values

    async def _get_row(self, document_id: str) -> Optional[DocumentModel]:
        try:
            return await self.session.get(self.model, document_id)
        except SQLAlchemyError as e:
            raise DatabaseException(str(e), collection=self.collection) from e

    async def _select(self, *criteria) -> List[DocumentModel]:
        statement = select(self.model).where(*criteria).order_by(
            self.model.created_at, self.model.id
        )
        try:
            result = await self.session.execute(statement)
        except SQLAlchemyError as e:
            raise DatabaseException(str(e), collection=self.collection) from e
        return list(result.scalars().all())

    async def get(self, document_id: str) -> Optional[RecordT]:
        row = await self._get_row(document_id)
        return self.to_record(row) if row is not None else None

    async def add(self, **values: Any) -> RecordT:
        row = self.model(**self.prepare(values))
        try:
            self.session.add(row)
            await self.session.flush()
        except SQLAlchemyError as e:
            raise DatabaseException(str(e), collection=self.collection) from e
        return self.to_record(row)

    async def update(self, document_id: str, **changes: Any) -> RecordT:
        row = await self._get_row(document_id)
        if row is None:
            await self.require(document_id)

        for key, value in self.prepare(changes).items():
            setattr(row, key, value)
        try:
            await self.session.flush()
        except SQLAlchemyError as e:
            raise DatabaseException(str(e), collection=self.collection) from e
        return self.to_record(row)

    async def delete(self, document_id: str) -> bool:
        row = await self._get_row(document_id)
        if row is None:
            return False
        try:
            await self.session.delete(row)
            await self.session.flush()
        except SQLAlchemyError as e:
            raise DatabaseException(str(e), collection=self.collection) from e
        return True

    async def list_all(self) -> List[RecordT]:
        return [self.to_record(row) for row in await self._select()]

    async def find(self, **equals: Any) -> List[RecordT]:
        if not equals:
            return await self.list_all()

        criteria = list(equals.items())
        first_field, first_value = criteria[0]
        rows = await self._select(getattr(self.model, first_field) == first_value)
        records = [self.to_record(row) for row in rows]

        for field, value in criteria[1:]:
            records = [r for r in records if getattr(r, field) == value]
        return records


class UserRepository(SQLAlchemyRepository[UserRecord]):
    collection = "users"
    model = User
    record_class = UserRecord

    async def get_by_email(self, email: str) -> Optional[UserRecord]:
        matches = await self.find(email=email.strip().lower())
        return matches[0] if matches else None

    async def get_by_subject(self, subject: str) -> Optional[UserRecord]:
        matches = await self.find(auth_subject=subject)
        return matches[0] if matches else None

    async def credentials_for(self, email: str) -> Optional[Tuple[UserRecord, Optional[str]]]:
        """Return the user document together with its password hash"""
        rows = await self._select(User.email == email.strip().lower())
        if not rows:
            return None
        return self.to_record(rows[0]), rows[0].hashed_password

    async def students(self) -> List[UserRecord]:
        return await self.find(role=UserRole.STUDENT)

    async def teachers(self) -> List[UserRecord]:
        return await self.find(role=UserRole.TEACHER)


class QuizRepository(SQLAlchemyRepository[QuizRecord]):
    collection = "quizzes"
    model = Quiz
    record_class = QuizRecord

    async def for_teacher(self, teacher_id: str) -> List[QuizRecord]:
        return await self.find(teacher_id=teacher_id)

    async def for_grade(self, grade: str) -> List[QuizRecord]:
        return await self.find(target_grade=grade)

    def prepare(self, values: Dict[str, Any]) -> Dict[str, Any]:
        values = dict(values)
        if "questions" in values:
            values["questions"] = [
                Question.model_validate(q).model_dump(by_alias=True)
                for q in values["questions"]
            ]
        return values


class AttemptRepository(SQLAlchemyRepository[AttemptRecord]):
    collection = "attempts"
    model = Attempt
    record_class = AttemptRecord

    async def for_student(self, student_id: str) -> List[AttemptRecord]:
        return await self.find(student_id=student_id)

    async def for_quiz(self, quiz_id: str) -> List[AttemptRecord]:
        return await self.find(quiz_id=quiz_id)


class Repositories:
    """The three collections bound to one session"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.users = UserRepository(session)
        self.quizzes = QuizRepository(session)
        self.attempts = AttemptRepository(session)


__all__ = [
    "DocumentRepository",
    "SQLAlchemyRepository",
    "UserRepository",
    "QuizRepository",
    "AttemptRepository",
    "Repositories"
]
