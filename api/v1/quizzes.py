"""
Quiz catalogue, attempts and reports.
"""

import logging
import random
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import forbid_ai_only
from core.database import get_db
from models.quiz import Quiz, QuizAttempt, QuizReport
from models.user import User
from repositories.quiz import (
    CategoryRepository,
    QuestionRepository,
    QuizAttemptRepository,
    QuizRepository,
)
from schemas.quiz import (
    CategoryRead,
    QuizAttemptCreate,
    QuizAttemptResponse,
    QuizDetailResponse,
    QuizReportRead,
    QuizSummary,
)
from services.quiz_report import build_report, grade_answers

logger = logging.getLogger(__name__)

router = APIRouter()


def _check_quiz_access(quiz: Quiz, user: User) -> None:
    if quiz.is_premium and not user.is_premium:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Premium access required")


@router.get("/categories", response_model=List[CategoryRead])
async def list_categories(db: AsyncSession = Depends(get_db)):
    return await CategoryRepository(db).list_ordered()


@router.get("/categories/{category_id}/quizzes", response_model=List[QuizSummary])
async def list_category_quizzes(category_id: int, db: AsyncSession = Depends(get_db)):
    if not await CategoryRepository(db).exists(category_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")

    rows = await QuizRepository(db).list_for_category(category_id)
    return [
        QuizSummary.model_validate(quiz).model_copy(update={"question_count": count})
        for quiz, count in rows
    ]


@router.get("/quizzes/{quiz_id}", response_model=QuizDetailResponse)
async def get_quiz(
    quiz_id: int,
    current_user: User = Depends(forbid_ai_only),
    db: AsyncSession = Depends(get_db),
):
    """Questions are shuffled and capped at the quiz's per-attempt limit; answers are never included."""
    quiz = await QuizRepository(db).get(quiz_id)
    if not quiz or not quiz.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Quiz not found")
    _check_quiz_access(quiz, current_user)

    questions = await QuestionRepository(db).list_for_quiz(quiz.id)
    random.shuffle(questions)
    if quiz.max_questions_per_attempt:
        questions = questions[: quiz.max_questions_per_attempt]

    return QuizDetailResponse(quiz=quiz, questions=questions)


@router.post("/quiz-attempts", response_model=QuizAttemptResponse, status_code=status.HTTP_201_CREATED)
async def submit_quiz_attempt(
    request: QuizAttemptCreate,
    current_user: User = Depends(forbid_ai_only),
    db: AsyncSession = Depends(get_db),
):
    quiz = await QuizRepository(db).get(request.quiz_id)
    if not quiz or not quiz.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Quiz not found")
    _check_quiz_access(quiz, current_user)

    questions = await QuestionRepository(db).list_for_quiz(quiz.id)
    submitted = {a.question_id: a.selected for a in request.answers}
    presented = min(len(questions), quiz.max_questions_per_attempt or len(questions))
    grade = grade_answers(questions, submitted, expected_total=presented)
    if not grade.answers:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Nessuna risposta corrisponde alle domande del quiz",
        )

    report_data = build_report(quiz, grade, request.time_spent)
    attempt = QuizAttempt(
        user_id=current_user.id,
        quiz_id=quiz.id,
        score=grade.score,
        correct_answers=grade.correct_answers,
        total_questions=grade.total_questions,
        time_spent=request.time_spent,
        answers=[a.as_dict() for a in grade.answers],
    )
    report = QuizReport(
        user_id=current_user.id,
        quiz_id=quiz.id,
        report_data=report_data,
        weak_areas=report_data["weakAreas"],
        strengths=report_data["strengths"],
        recommendations=report_data["recommendations"],
        passed=report_data["passStatus"] == "pass",
    )
    attempt, report = await QuizAttemptRepository(db).create_with_report(attempt, report)

    logger.info(
        f"User {current_user.id} completed quiz {quiz.id}: "
        f"{grade.correct_answers}/{grade.total_questions} ({grade.score}%)"
    )
    return QuizAttemptResponse(attempt=attempt, report=report)


@router.get("/quiz-reports/{attempt_id}", response_model=QuizReportRead)
async def get_quiz_report(
    attempt_id: int,
    current_user: User = Depends(forbid_ai_only),
    db: AsyncSession = Depends(get_db),
):
    report = await QuizAttemptRepository(db).get_report(attempt_id)
    if not report:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Report not found")
    if report.user_id != current_user.id and not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized")
    return report
