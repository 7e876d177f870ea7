from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from models.quiz import Difficulty
from schemas.common import BaseSchema


class QuestionOption(BaseSchema):
    label: str = Field(min_length=1, max_length=5)
    text: str


# Catalogue (public)

class CategoryRead(BaseSchema):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    image_url: Optional[str] = None
    is_premium: bool
    sort_order: int


class QuizRead(BaseSchema):
    id: int
    category_id: int
    title: str
    description: Optional[str] = None
    duration: Optional[int] = None
    difficulty: Difficulty
    is_premium: bool
    is_active: bool
    max_questions_per_attempt: Optional[int] = None


class QuizSummary(QuizRead):
    question_count: int = 0


class QuestionPublic(BaseSchema):
    """Question as shown while taking the quiz: no answers, no explanation."""

    id: int
    question: str
    options: List[QuestionOption]
    category: Optional[str] = None


class QuizDetailResponse(BaseSchema):
    quiz: QuizRead
    questions: List[QuestionPublic]


# Attempts and reports

class SubmittedAnswer(BaseSchema):
    question_id: int
    selected: List[str] = []


class QuizAttemptCreate(BaseSchema):
    quiz_id: int
    answers: List[SubmittedAnswer] = Field(min_length=1)
    time_spent: Optional[int] = Field(default=None, ge=0)


class QuizAttemptRead(BaseSchema):
    id: int
    user_id: int
    quiz_id: int
    score: int
    correct_answers: int
    total_questions: int
    time_spent: Optional[int] = None
    completed_at: Optional[datetime] = None


class QuizReportRead(BaseSchema):
    id: int
    attempt_id: int
    user_id: int
    quiz_id: int
    report_data: Dict[str, Any]
    weak_areas: List[Dict[str, Any]]
    strengths: List[str]
    recommendations: Optional[str] = None
    passed: bool
    created_at: Optional[datetime] = None


class QuizAttemptResponse(BaseSchema):
    success: bool = True
    attempt: QuizAttemptRead
    report: QuizReportRead


# Admin catalogue management

class CategoryCreate(BaseSchema):
    name: str = Field(min_length=1, max_length=150)
    slug: Optional[str] = Field(default=None, max_length=170)
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    image_url: Optional[str] = None
    is_premium: bool = False
    sort_order: int = 0


class CategoryUpdate(BaseSchema):
    name: Optional[str] = Field(default=None, min_length=1, max_length=150)
    slug: Optional[str] = Field(default=None, max_length=170)
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    image_url: Optional[str] = None
    is_premium: Optional[bool] = None
    sort_order: Optional[int] = None


class QuizCreate(BaseSchema):
    category_id: int
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    duration: Optional[int] = Field(default=None, ge=1)
    difficulty: Difficulty = Difficulty.INTERMEDIATE
    is_premium: bool = False
    is_active: bool = True
    max_questions_per_attempt: Optional[int] = Field(default=None, ge=1)


class QuizUpdate(BaseSchema):
    category_id: Optional[int] = None
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    duration: Optional[int] = Field(default=None, ge=1)
    difficulty: Optional[Difficulty] = None
    is_premium: Optional[bool] = None
    is_active: Optional[bool] = None
    max_questions_per_attempt: Optional[int] = Field(default=None, ge=1)


class QuestionCreate(BaseSchema):
    quiz_id: int
    question: str = Field(min_length=1)
    options: List[QuestionOption] = Field(min_length=2)
    correct_answers: List[str] = Field(min_length=1)
    explanation: Optional[str] = None
    category: Optional[str] = Field(default=None, max_length=100)


class QuestionUpdate(BaseSchema):
    question: Optional[str] = Field(default=None, min_length=1)
    options: Optional[List[QuestionOption]] = Field(default=None, min_length=2)
    correct_answers: Optional[List[str]] = Field(default=None, min_length=1)
    explanation: Optional[str] = None
    category: Optional[str] = Field(default=None, max_length=100)


class QuestionRead(BaseSchema):
    id: int
    quiz_id: int
    question: str
    options: List[QuestionOption]
    correct_answers: List[str]
    explanation: Optional[str] = None
    category: Optional[str] = None
