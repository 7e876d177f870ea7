"""
Quiz grading and performance reports.

Answers are graded server side against the stored correct labels. The
report groups results by question category, flags weak areas (< 70%) and
strengths (>= 80%), and builds an Italian study plan by score band.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from models.quiz import Difficulty, Question, Quiz

WEAK_AREA_THRESHOLD = 70
STRENGTH_THRESHOLD = 80
DEFAULT_CATEGORY = "General"

PASS_THRESHOLDS = {
    Difficulty.BEGINNER: 60,
    Difficulty.INTERMEDIATE: 70,
    Difficulty.ADVANCED: 75,
    Difficulty.EXPERT: 75,
}
DEFAULT_PASS_THRESHOLD = 70

PRIORITY_LABELS = ("🔴 PRIORITÀ ALTA", "🟡 PRIORITÀ MEDIA", "🟢 PRIORITÀ BASSA")


@dataclass
class GradedAnswer:
    question_id: int
    question: str
    category: Optional[str]
    selected: List[str]
    correct: List[str]
    is_correct: bool
    explanation: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "questionId": self.question_id,
            "question": self.question,
            "category": self.category,
            "userAnswer": self.selected,
            "correctAnswer": self.correct,
            "isCorrect": self.is_correct,
            "explanation": self.explanation,
        }


@dataclass
class GradeResult:
    score: int
    correct_answers: int
    total_questions: int
    answers: List[GradedAnswer] = field(default_factory=list)


def _labels(values: Iterable[Any]) -> List[str]:
    return sorted({str(v).strip().upper() for v in values if str(v).strip()})


def percentage(correct: int, total: int) -> int:
    """Whole percentage rounded half up."""
    if total <= 0:
        return 0
    return (correct * 200 + total) // (2 * total)


def grade_answers(
    questions: List[Question],
    submitted: Dict[int, List[str]],
    expected_total: Optional[int] = None,
) -> GradeResult:
    """
    Grade the submitted answers. Only questions that belong to the quiz and
    were presented to the user (present in ``submitted``) are graded.

    ``expected_total`` is the number of questions the attempt presented;
    questions left unanswered below that count score as wrong.
    """
    graded = []
    for question in questions:
        if question.id not in submitted:
            continue
        selected = _labels(submitted[question.id])
        correct = _labels(question.correct_answers or [])
        graded.append(
            GradedAnswer(
                question_id=question.id,
                question=question.question,
                category=question.category,
                selected=selected,
                correct=correct,
                is_correct=bool(correct) and selected == correct,
                explanation=question.explanation,
            )
        )

    correct_count = sum(1 for a in graded if a.is_correct)
    total = max(len(graded), expected_total or 0)
    return GradeResult(
        score=percentage(correct_count, total),
        correct_answers=correct_count,
        total_questions=total,
        answers=graded,
    )


def pass_threshold(difficulty: Optional[Difficulty]) -> int:
    return PASS_THRESHOLDS.get(difficulty, DEFAULT_PASS_THRESHOLD)


def category_stats(answers: List[GradedAnswer]) -> Dict[str, Dict[str, int]]:
    stats: Dict[str, Dict[str, int]] = {}
    for answer in answers:
        bucket = stats.setdefault(answer.category or DEFAULT_CATEGORY, {"correct": 0, "total": 0})
        bucket["total"] += 1
        if answer.is_correct:
            bucket["correct"] += 1
    return stats


def weak_areas(stats: Dict[str, Dict[str, int]]) -> List[Dict[str, Any]]:
    areas = []
    for category, s in stats.items():
        pct = percentage(s["correct"], s["total"])
        if pct < WEAK_AREA_THRESHOLD:
            areas.append({
                "category": category,
                "wrongCount": s["total"] - s["correct"],
                "totalCount": s["total"],
                "percentage": pct,
            })
    return sorted(areas, key=lambda a: a["percentage"])


def strengths(stats: Dict[str, Dict[str, int]]) -> List[str]:
    return [
        category for category, s in stats.items()
        if s["total"] and s["correct"] * 100 >= STRENGTH_THRESHOLD * s["total"]
    ]


def _score_band(score: int) -> List[str]:
    if score < 60:
        return [
            "📚 **Revisione Completa Necessaria**",
            "Il tuo punteggio indica la necessità di una preparazione più approfondita.",
            "",
            "**Piano di Studio Consigliato:**",
            "1. Dedica almeno 2-3 settimane allo studio sistematico",
            "2. Studia un modulo alla volta",
            "3. Crea flashcard per i concetti chiave",
            "4. Ripeti il quiz solo dopo aver completato la revisione",
        ]
    if score < 75:
        return [
            "📖 **Buona Base, Necessari Affinamenti**",
            "Hai una comprensione discreta degli argomenti.",
            "",
            "**Prossimi Passi:**",
            "1. Focalizzati sulle aree deboli evidenziate sotto",
            "2. Dedica 1-2 ore al giorno di studio mirato",
            "3. Rivedi gli errori commessi per capire il ragionamento corretto",
        ]
    if score < 90:
        return [
            "✨ **Ottimo Livello, Un Ultimo Sforzo**",
            "Sei molto vicino all'eccellenza!",
            "",
            "**Ultimi Ritocchi:**",
            "1. Rivedi in dettaglio solo le aree critiche",
            "2. Approfondisci i casi pratici e scenari reali",
        ]
    return [
        "🎉 **Eccellente Padronanza degli Argomenti**",
        "Hai dimostrato una comprensione solida e completa.",
        "",
        "**Sei Pronto Per:**",
        "✓ Ottenere il certificato",
        "✓ Passare a moduli più avanzati",
    ]


def build_recommendations(score: int, areas: List[Dict[str, Any]]) -> str:
    lines = _score_band(score)
    if areas:
        lines += ["", "🎯 **Aree da Migliorare:**", ""]
        for priority, area in zip(PRIORITY_LABELS, areas):
            level = "Critica" if area["percentage"] < 50 else "Insufficiente"
            lines.append(f"**{priority} - {area['category']}**")
            lines.append(
                f"├─ Performance: {level} ({area['percentage']}% corrette, "
                f"{area['wrongCount']}/{area['totalCount']} errori)"
            )
            lines.append("└─ Rivedi teoria e definizioni di base, poi esercitati su questo argomento")
            lines.append("")
    return "\n".join(lines).rstrip()


def build_report(quiz: Quiz, grade: GradeResult, time_spent: Optional[int]) -> Dict[str, Any]:
    stats = category_stats(grade.answers)
    areas = weak_areas(stats)
    passed = grade.score >= pass_threshold(quiz.difficulty)
    return {
        "score": grade.score,
        "correctAnswers": grade.correct_answers,
        "totalQuestions": grade.total_questions,
        "timeSpent": time_spent or 0,
        "passStatus": "pass" if passed else "fail",
        "passThreshold": pass_threshold(quiz.difficulty),
        "categoryStats": stats,
        "weakAreas": areas,
        "strengths": strengths(stats),
        "recommendations": build_recommendations(grade.score, areas),
        "detailedAnswers": [a.as_dict() for a in grade.answers],
    }
