"""
Admin management of the quiz catalogue.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from slugify import slugify
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import require_admin
from core.database import get_db
from models.user import User
from repositories.quiz import CategoryRepository, QuestionRepository, QuizRepository
from schemas.quiz import (
    CategoryCreate,
    CategoryRead,
    CategoryUpdate,
    QuestionCreate,
    QuestionRead,
    QuestionUpdate,
    QuizCreate,
    QuizRead,
    QuizUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _not_found(what: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{what} not found")


def _dump_question(data: dict) -> dict:
    if "correct_answers" in data and data["correct_answers"] is not None:
        data["correct_answers"] = [label.strip().upper() for label in data["correct_answers"]]
    return data


# Categories

@router.get("/categories", response_model=List[CategoryRead])
async def admin_list_categories(_: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    return await CategoryRepository(db).list_ordered()


@router.post("/categories", response_model=CategoryRead, status_code=status.HTTP_201_CREATED)
async def create_category(
    request: CategoryCreate,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    repo = CategoryRepository(db)
    data = request.model_dump()
    data["slug"] = slugify(data.get("slug") or data["name"])
    if await repo.slug_taken(data["slug"]):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Slug already in use")
    category = await repo.create(data)
    logger.info(f"Category {category.id} created ({category.slug})")
    return category


@router.patch("/categories/{category_id}", response_model=CategoryRead)
async def update_category(
    category_id: int,
    request: CategoryUpdate,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    repo = CategoryRepository(db)
    category = await repo.get(category_id)
    if not category:
        raise _not_found("Category")

    changes = request.model_dump(exclude_unset=True)
    if changes.get("slug"):
        changes["slug"] = slugify(changes["slug"])
        if await repo.slug_taken(changes["slug"], exclude_id=category_id):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Slug already in use")
    return await repo.update(category, changes)


@router.delete("/categories/{category_id}")
async def delete_category(category_id: int, _: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    if not await CategoryRepository(db).delete(category_id):
        raise _not_found("Category")
    return {"success": True, "message": "Category deleted"}


# Quizzes

@router.get("/quizzes", response_model=List[QuizRead])
async def admin_list_quizzes(
    category_id: Optional[int] = Query(default=None, alias="categoryId"),
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await QuizRepository(db).list_all(category_id=category_id)


@router.post("/quizzes", response_model=QuizRead, status_code=status.HTTP_201_CREATED)
async def create_quiz(request: QuizCreate, _: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    if not await CategoryRepository(db).exists(request.category_id):
        raise _not_found("Category")
    return await QuizRepository(db).create(request.model_dump())


@router.patch("/quizzes/{quiz_id}", response_model=QuizRead)
async def update_quiz(
    quiz_id: int,
    request: QuizUpdate,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    repo = QuizRepository(db)
    quiz = await repo.get(quiz_id)
    if not quiz:
        raise _not_found("Quiz")
    changes = request.model_dump(exclude_unset=True)
    if changes.get("category_id") and not await CategoryRepository(db).exists(changes["category_id"]):
        raise _not_found("Category")
    return await repo.update(quiz, changes)


@router.delete("/quizzes/{quiz_id}")
async def delete_quiz(quiz_id: int, _: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    if not await QuizRepository(db).delete(quiz_id):
        raise _not_found("Quiz")
    return {"success": True, "message": "Quiz deleted"}


# Questions

@router.get("/questions", response_model=List[QuestionRead])
async def admin_list_questions(
    quiz_id: int = Query(alias="quizId"),
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await QuestionRepository(db).list_for_quiz(quiz_id)


@router.post("/questions", response_model=QuestionRead, status_code=status.HTTP_201_CREATED)
async def create_question(request: QuestionCreate, _: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    if not await QuizRepository(db).exists(request.quiz_id):
        raise _not_found("Quiz")
    return await QuestionRepository(db).create(_dump_question(request.model_dump()))


@router.patch("/questions/{question_id}", response_model=QuestionRead)
async def update_question(
    question_id: int,
    request: QuestionUpdate,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    repo = QuestionRepository(db)
    question = await repo.get(question_id)
    if not question:
        raise _not_found("Question")
    return await repo.update(question, _dump_question(request.model_dump(exclude_unset=True)))


@router.delete("/questions/{question_id}")
async def delete_question(question_id: int, _: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    if not await QuestionRepository(db).delete(question_id):
        raise _not_found("Question")
    return {"success": True, "message": "Question deleted"}
