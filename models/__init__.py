"""
SQLAlchemy ORM models for CIRY Backend.

Contains all database models organized by module.
"""

from .user import User, DoctorPatientLink, DoctorLinkingCode
from .authentication import UserSession
from .wearable import WearableDevice, BloodPressureReading, WearableDailyReport
from .notification import Notification, PushSubscription, ProactiveNotification
from .appointment import Appointment, AppointmentReminder
from .triage import TriageSession, TriageMessage, TriageAlert
from .quiz import Category, Quiz, Question, QuizAttempt, QuizReport
from .certificate import UserCertificate
from .content import ContentPage, Setting
from .prohmed import ProhmedCode

__all__ = [
    "User",
    "DoctorPatientLink",
    "DoctorLinkingCode",
    "UserSession",
    "WearableDevice",
    "BloodPressureReading",
    "WearableDailyReport",
    "Notification",
    "PushSubscription",
    "ProactiveNotification",
    "Appointment",
    "AppointmentReminder",
    "TriageSession",
    "TriageMessage",
    "TriageAlert",
    "Category",
    "Quiz",
    "Question",
    "QuizAttempt",
    "QuizReport",
    "UserCertificate",
    "ContentPage",
    "Setting",
    "ProhmedCode",
]
