import logging
from typing import List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError

from models.quiz import Category, Quiz, Question, QuizAttempt, QuizReport
from repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class CategoryRepository(BaseRepository[Category, None, None]):
    def __init__(self, db_session: AsyncSession):
        super().__init__(Category, db_session)

    async def list_ordered(self) -> List[Category]:
        result = await self.db.execute(select(Category).order_by(Category.sort_order, Category.name))
        return list(result.scalars().all())

    async def slug_taken(self, slug: str, exclude_id: Optional[int] = None) -> bool:
        query = select(Category.id).where(Category.slug == slug)
        if exclude_id is not None:
            query = query.where(Category.id != exclude_id)
        result = await self.db.execute(query)
        return result.first() is not None


class QuizRepository(BaseRepository[Quiz, None, None]):
    def __init__(self, db_session: AsyncSession):
        super().__init__(Quiz, db_session)

    async def list_for_category(self, category_id: int, include_inactive: bool = False) -> List[Tuple[Quiz, int]]:
        """Quizzes of a category with their question counts."""
        question_count = (
            select(func.count(Question.id))
            .where(Question.quiz_id == Quiz.id)
            .correlate(Quiz)
            .scalar_subquery()
        )
        query = select(Quiz, question_count).where(Quiz.category_id == category_id)
        if not include_inactive:
            query = query.where(Quiz.is_active.is_(True))
        result = await self.db.execute(query.order_by(Quiz.title))
        return [(quiz, count) for quiz, count in result.all()]

    async def list_all(self, category_id: Optional[int] = None) -> List[Quiz]:
        query = select(Quiz)
        if category_id is not None:
            query = query.where(Quiz.category_id == category_id)
        result = await self.db.execute(query.order_by(Quiz.category_id, Quiz.title))
        return list(result.scalars().all())


class QuestionRepository(BaseRepository[Question, None, None]):
    def __init__(self, db_session: AsyncSession):
        super().__init__(Question, db_session)

    async def list_for_quiz(self, quiz_id: int) -> List[Question]:
        result = await self.db.execute(select(Question).where(Question.quiz_id == quiz_id).order_by(Question.id))
        return list(result.scalars().all())


class QuizAttemptRepository:
    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session

    async def get_attempt(self, attempt_id: int) -> Optional[QuizAttempt]:
        return await self.db_session.get(QuizAttempt, attempt_id)

    async def get_report(self, attempt_id: int) -> Optional[QuizReport]:
        result = await self.db_session.execute(select(QuizReport).where(QuizReport.attempt_id == attempt_id))
        return result.scalar_one_or_none()

    async def create_with_report(self, attempt: QuizAttempt, report: QuizReport) -> Tuple[QuizAttempt, QuizReport]:
        """Attempt and report are stored in one transaction."""
        try:
            self.db_session.add(attempt)
            await self.db_session.flush()
            report.attempt_id = attempt.id
            self.db_session.add(report)
            await self.db_session.commit()
            await self.db_session.refresh(attempt)
            await self.db_session.refresh(report)
            return attempt, report
        except SQLAlchemyError as e:
            await self.db_session.rollback()
            logger.exception(f"Database error storing quiz attempt: {str(e)}")
            raise
