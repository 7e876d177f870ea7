from types import SimpleNamespace

import pytest

from models.quiz import Difficulty
from services.quiz_report import (
    build_recommendations,
    build_report,
    category_stats,
    grade_answers,
    pass_threshold,
    percentage,
    strengths,
    weak_areas,
)


def question(qid, correct, category=None):
    return SimpleNamespace(
        id=qid,
        question=f"Domanda {qid}",
        correct_answers=correct,
        category=category,
        explanation=None,
    )


@pytest.mark.parametrize("correct,total,expected", [(1, 3, 33), (2, 3, 67), (1, 8, 13), (0, 4, 0), (0, 0, 0)])
def test_percentage_rounds_half_up(correct, total, expected):
    assert percentage(correct, total) == expected


def test_grading_compares_label_sets():
    questions = [
        question(1, ["A"]),
        question(2, ["b", "C"]),
        question(3, ["D"]),
        question(4, []),
    ]
    grade = grade_answers(questions, {1: ["a"], 2: ["C", "B"], 3: ["A", "D"], 4: []})
    assert [a.is_correct for a in grade.answers] == [True, True, False, False]
    assert grade.correct_answers == 2
    assert grade.total_questions == 4
    assert grade.score == 50


def test_only_presented_questions_count():
    questions = [question(1, ["A"]), question(2, ["B"]), question(3, ["C"])]
    grade = grade_answers(questions, {2: ["B"], 99: ["A"]})
    assert grade.total_questions == 1
    assert grade.score == 100


def test_pass_thresholds():
    assert pass_threshold(Difficulty.BEGINNER) == 60
    assert pass_threshold(Difficulty.EXPERT) == 75
    assert pass_threshold(None) == 70


def test_weak_areas_and_strengths():
    questions = [
        question(1, ["A"], "Cardiologia"),
        question(2, ["A"], "Cardiologia"),
        question(3, ["A"], "Nutrizione"),
        question(4, ["A"], "Nutrizione"),
        question(5, ["A"], "Nutrizione"),
        question(6, ["A"]),
    ]
    grade = grade_answers(questions, {1: ["A"], 2: ["A"], 3: ["A"], 4: ["B"], 5: ["B"], 6: ["B"]})
    stats = category_stats(grade.answers)

    assert stats == {
        "Cardiologia": {"correct": 2, "total": 2},
        "Nutrizione": {"correct": 1, "total": 3},
        "General": {"correct": 0, "total": 1},
    }
    assert weak_areas(stats) == [
        {"category": "General", "wrongCount": 1, "totalCount": 1, "percentage": 0},
        {"category": "Nutrizione", "wrongCount": 2, "totalCount": 3, "percentage": 33},
    ]
    assert strengths(stats) == ["Cardiologia"]


def test_recommendations_by_band():
    assert build_recommendations(40, []).startswith("📚 **Revisione Completa Necessaria**")
    assert build_recommendations(70, []).startswith("📖")
    assert build_recommendations(80, []).startswith("✨")
    assert build_recommendations(95, []).startswith("🎉")


def test_recommendations_list_at_most_three_weak_areas():
    areas = [
        {"category": f"Area {i}", "wrongCount": 2, "totalCount": 3, "percentage": 33 + i} for i in range(4)
    ]
    text = build_recommendations(30, areas)
    assert "**🔴 PRIORITÀ ALTA - Area 0**" in text
    assert "**🟢 PRIORITÀ BASSA - Area 2**" in text
    assert "Area 3" not in text
    assert "Critica (33% corrette, 2/3 errori)" in text


def test_report_pass_status_follows_difficulty():
    questions = [question(i, ["A"]) for i in range(1, 11)]
    answers = {i: ["A"] if i <= 7 else ["B"] for i in range(1, 11)}
    grade = grade_answers(questions, answers)

    beginner = build_report(SimpleNamespace(difficulty=Difficulty.BEGINNER), grade, 300)
    advanced = build_report(SimpleNamespace(difficulty=Difficulty.ADVANCED), grade, None)

    assert beginner["passStatus"] == "pass"
    assert beginner["timeSpent"] == 300
    assert advanced["passStatus"] == "fail"
    assert advanced["passThreshold"] == 75
    assert advanced["timeSpent"] == 0
    assert len(advanced["detailedAnswers"]) == 10
    assert advanced["detailedAnswers"][7]["isCorrect"] is False


def test_unanswered_presented_questions_count_as_wrong():
    questions = [question(i, ["A"]) for i in range(1, 6)]
    grade = grade_answers(questions, {1: ["A"]}, expected_total=5)
    assert grade.correct_answers == 1
    assert grade.total_questions == 5
    assert grade.score == 20
    assert len(grade.answers) == 1
