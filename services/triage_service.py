"""
Prevention / triage chat.

The assistant ("Prohmed") answers in Italian through the OpenAI chat API in
JSON mode. Every reply carries an urgency assessment; the session keeps the
highest urgency seen so far, and sessions that turn urgent, sensitive or
doctor-worthy raise a single open alert for review.
"""

import json
from dataclasses import dataclass
from typing import List, Optional, Sequence

from openai import AsyncOpenAI, OpenAIError
from pydantic import Field, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.database import utcnow
from core.logging import get_logger
from models.triage import (
    AlertStatus,
    AlertType,
    TriageAlert,
    TriageMessage,
    TriageSession,
    TriageSessionStatus,
    UrgencyLevel,
)
from models.user import User
from repositories.triage import TriageRepository
from schemas.common import BaseSchema
from services.settings_service import get_api_key
from services.wearable_notifications import TriageAlertEvent, TRIAGE_PUSH_URGENCIES

logger = get_logger(__name__)

HISTORY_LIMIT = 20

EMERGENCY_KEYWORDS = (
    "dolore al petto",
    "dolore toracico",
    "non riesco a respirare",
    "difficoltà a respirare",
    "fiato corto improvviso",
    "svenuto",
    "svenimento",
    "perdita di coscienza",
    "infarto",
    "ictus",
    "paralisi",
    "convulsioni",
    "emorragia",
    "sangue dalla bocca",
    "suicidio",
    "voglio morire",
    "togliermi la vita",
)

SYSTEM_PROMPT = """You are a medical triage assistant named "Prohmed".
You help users understand their symptoms and guide them to appropriate care.

IMPORTANT GUIDELINES:
- Be empathetic, professional, and reassuring
- Ask clarifying questions about symptoms
- NEVER diagnose - only provide general health information
- For serious symptoms, ALWAYS recommend consulting a doctor
- Flag sensitive topics (mental health, chronic diseases, emergencies)
- Assess urgency level based on symptoms
- Suggest relevant prevention topics for further learning
- Use Italian language naturally and conversationally

MEDICAL REPORTS DETECTION:
- If user mentions wanting to share medical reports, test results, lab results, or medical documents, set needsReportUpload=true
- When needsReportUpload=true, inform user they can upload their reports for AI analysis

Respond with JSON in this exact format:
{
  "message": "your conversational response in Italian",
  "isSensitive": boolean (mental health, chronic conditions, or private topics),
  "suggestDoctor": boolean (should user contact a real doctor?),
  "urgencyLevel": "low" | "medium" | "high" | "emergency",
  "relatedTopics": ["topic1", "topic2", ...],
  "needsReportUpload": boolean (true if user wants to share medical reports/tests)
}"""


class TriageServiceError(Exception):
    """The AI provider failed or returned something unusable."""


class TriageSessionError(Exception):
    status_code = 400


class TriageSessionNotFoundError(TriageSessionError):
    status_code = 404


class TriageSessionForbiddenError(TriageSessionError):
    status_code = 403


class TriageResponse(BaseSchema):
    message: str = Field(min_length=1)
    is_sensitive: bool = False
    suggest_doctor: bool = False
    urgency_level: UrgencyLevel = UrgencyLevel.LOW
    related_topics: List[str] = []
    needs_report_upload: bool = False


@dataclass
class TriageTurn:
    session: TriageSession
    messages: List[TriageMessage]
    response: TriageResponse
    alert: Optional[TriageAlert] = None
    alert_event: Optional[TriageAlertEvent] = None


def contains_emergency_keyword(text: str) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in EMERGENCY_KEYWORDS)


def higher_urgency(current: UrgencyLevel, new: UrgencyLevel) -> UrgencyLevel:
    return new if new.rank > current.rank else current


def alert_type_for(session: TriageSession) -> Optional[AlertType]:
    if session.urgency_level == UrgencyLevel.EMERGENCY:
        return AlertType.EMERGENCY
    if session.urgency_level == UrgencyLevel.HIGH:
        return AlertType.HIGH_URGENCY
    if session.is_sensitive:
        return AlertType.SENSITIVE_TOPIC
    if session.suggest_doctor:
        return AlertType.DOCTOR_SUGGESTED
    return None


ALERT_REASONS = {
    AlertType.EMERGENCY: "Possibile emergenza segnalata nella conversazione di prevenzione",
    AlertType.HIGH_URGENCY: "Sintomi ad alta urgenza segnalati nella conversazione di prevenzione",
    AlertType.SENSITIVE_TOPIC: "Argomento sensibile emerso nella conversazione di prevenzione",
    AlertType.DOCTOR_SUGGESTED: "L'assistente ha suggerito un consulto medico",
}


class TriageAI:
    """Thin wrapper over the chat completions API."""

    async def generate(self, api_key: Optional[str], history: Sequence[TriageMessage], user_message: str) -> TriageResponse:
        if not api_key:
            raise TriageServiceError("OpenAI API key not configured")

        messages = [{"role": "system", "content": SYSTEM_PROMPT}]
        messages += [{"role": m.role.value, "content": m.content} for m in history[-HISTORY_LIMIT:]]
        messages.append({"role": "user", "content": user_message})

        try:
            client = AsyncOpenAI(api_key=api_key)
            completion = await client.chat.completions.create(
                model=settings.OPENAI_MODEL,
                messages=messages,
                response_format={"type": "json_object"},
                temperature=settings.OPENAI_TEMPERATURE,
                max_tokens=settings.OPENAI_MAX_TOKENS,
            )
            content = completion.choices[0].message.content or ""
            return TriageResponse.model_validate(json.loads(content))
        except OpenAIError as e:
            logger.error("Triage AI request failed", error=str(e))
            raise TriageServiceError(f"AI provider error: {e}") from e
        except (json.JSONDecodeError, ValidationError) as e:
            logger.error("Triage AI returned an invalid payload", error=str(e))
            raise TriageServiceError("Invalid response from AI provider") from e


triage_ai = TriageAI()


class TriageService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = TriageRepository(db)

    async def get_owned_session(self, session_id: int, user: User) -> TriageSession:
        session = await self.repo.get_session(session_id)
        if not session:
            raise TriageSessionNotFoundError("Sessione non trovata")
        if session.user_id != user.id and not user.is_admin:
            raise TriageSessionForbiddenError("Non autorizzato")
        return session

    async def start(self, user: User, initial_symptom: str) -> TriageTurn:
        """The previous session is closed only once the assistant has answered."""
        response = await self._generate([], initial_symptom)

        closed = await self.repo.close_active_sessions(user.id)
        if closed:
            logger.info("Closed previous triage sessions", user_id=user.id, count=closed)
        session = await self.repo.create_session(user.id, initial_symptom.strip()[:100])
        return await self._record_turn(session, user, initial_symptom, response)

    async def send_message(self, session: TriageSession, user: User, content: str) -> TriageTurn:
        if session.status != TriageSessionStatus.ACTIVE:
            raise TriageSessionError("La sessione è chiusa")

        history = await self.repo.list_messages(session.id)
        response = await self._generate(history, content)
        return await self._record_turn(session, user, content, response)

    async def _generate(self, history: Sequence[TriageMessage], content: str) -> TriageResponse:
        api_key = await get_api_key(self.db, "OPENAI_API_KEY")
        return await triage_ai.generate(api_key, history, content)

    async def _record_turn(
        self, session: TriageSession, user: User, content: str, response: TriageResponse
    ) -> TriageTurn:
        if contains_emergency_keyword(content):
            response.urgency_level = UrgencyLevel.EMERGENCY
            response.suggest_doctor = True

        previous_urgency = session.urgency_level
        session.urgency_level = higher_urgency(session.urgency_level, response.urgency_level)
        session.is_sensitive = session.is_sensitive or response.is_sensitive
        session.suggest_doctor = session.suggest_doctor or response.suggest_doctor

        messages = await self.repo.add_exchange(session, content, response.message, response.related_topics)
        alert, escalated = await self._raise_alert(session, previous_urgency)

        event = None
        if alert and escalated and alert.urgency_level in TRIAGE_PUSH_URGENCIES:
            event = TriageAlertEvent(
                patient_id=user.id,
                patient_name=user.full_name,
                urgency_level=alert.urgency_level,
                reason=alert.reason,
                alert_id=alert.id,
            )

        logger.info(
            "Triage reply generated",
            session_id=session.id,
            urgency=session.urgency_level.value,
            alert_id=alert.id if alert else None,
        )
        return TriageTurn(session=session, messages=messages, response=response, alert=alert, alert_event=event)

    async def _raise_alert(self, session: TriageSession, previous_urgency: UrgencyLevel):
        """
        Keep one open alert per session. Returns the alert and whether it was
        created or escalated by this turn.
        """
        alert_type = alert_type_for(session)
        if alert_type is None:
            return None, False

        alert = await self.repo.get_open_alert(session.id)
        if alert is None:
            alert = TriageAlert(
                session_id=session.id,
                user_id=session.user_id,
                alert_type=alert_type,
                reason=ALERT_REASONS[alert_type],
                urgency_level=session.urgency_level,
                status=AlertStatus.PENDING,
            )
            return await self.repo.save_alert(alert), True

        if session.urgency_level.rank > previous_urgency.rank and session.urgency_level.rank > alert.urgency_level.rank:
            alert.urgency_level = session.urgency_level
            alert.alert_type = alert_type
            alert.reason = ALERT_REASONS[alert_type]
            return await self.repo.save_alert(alert), True

        return alert, False

    async def close(self, session: TriageSession) -> TriageSession:
        return await self.repo.close_session(session)

    async def resolve_alert(
        self,
        alert: TriageAlert,
        reviewer: User,
        status: AlertStatus = AlertStatus.CLOSED,
        notes: Optional[str] = None,
    ) -> TriageAlert:
        alert.status = status
        alert.reviewed_by_id = reviewer.id
        alert.reviewed_at = utcnow()
        alert.review_notes = notes
        alert = await self.repo.save_alert(alert)
        logger.info("Triage alert reviewed", alert_id=alert.id, status=status.value, reviewer_id=reviewer.id)
        return alert
