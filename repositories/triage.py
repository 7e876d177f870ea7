import logging
from typing import List, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import utcnow
from models.triage import (
    AlertStatus,
    MessageRole,
    TriageAlert,
    TriageMessage,
    TriageSession,
    TriageSessionStatus,
)
from models.user import DoctorPatientLink

logger = logging.getLogger(__name__)

OPEN_ALERT_STATUSES = (AlertStatus.PENDING, AlertStatus.MONITORING)


class TriageRepository:
    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session

    # Sessions

    async def create_session(self, user_id: int, title: Optional[str]) -> TriageSession:
        session = TriageSession(user_id=user_id, title=title)
        self.db_session.add(session)
        await self.db_session.commit()
        await self.db_session.refresh(session)
        return session

    async def get_session(self, session_id: int) -> Optional[TriageSession]:
        return await self.db_session.get(TriageSession, session_id)

    async def get_active_session(self, user_id: int) -> Optional[TriageSession]:
        result = await self.db_session.execute(
            select(TriageSession)
            .where(
                TriageSession.user_id == user_id,
                TriageSession.status == TriageSessionStatus.ACTIVE,
            )
            .order_by(TriageSession.created_at.desc(), TriageSession.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def close_active_sessions(self, user_id: int) -> int:
        result = await self.db_session.execute(
            update(TriageSession)
            .where(
                TriageSession.user_id == user_id,
                TriageSession.status == TriageSessionStatus.ACTIVE,
            )
            .values(status=TriageSessionStatus.CLOSED, closed_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await self.db_session.commit()
        return result.rowcount

    async def close_session(self, session: TriageSession) -> TriageSession:
        session.status = TriageSessionStatus.CLOSED
        session.closed_at = utcnow()
        await self.db_session.commit()
        await self.db_session.refresh(session)
        return session

    # Messages

    async def list_messages(self, session_id: int) -> List[TriageMessage]:
        result = await self.db_session.execute(
            select(TriageMessage)
            .where(TriageMessage.session_id == session_id)
            .order_by(TriageMessage.created_at, TriageMessage.id)
        )
        return list(result.scalars().all())

    async def add_exchange(
        self,
        session: TriageSession,
        user_content: str,
        assistant_content: str,
        related_topics: Sequence[str],
    ) -> List[TriageMessage]:
        """Persist a user message, the assistant reply and the session's updated flags together."""
        user_message = TriageMessage(session_id=session.id, role=MessageRole.USER, content=user_content)
        assistant_message = TriageMessage(
            session_id=session.id,
            role=MessageRole.ASSISTANT,
            content=assistant_content,
            related_topics=list(related_topics),
        )
        try:
            self.db_session.add(user_message)
            await self.db_session.flush()
            self.db_session.add(assistant_message)
            session.updated_at = utcnow()
            await self.db_session.commit()
            await self.db_session.refresh(user_message)
            await self.db_session.refresh(assistant_message)
            await self.db_session.refresh(session)
        except Exception as e:
            await self.db_session.rollback()
            logger.error(f"Error saving triage exchange for session {session.id}: {e}")
            raise
        return [user_message, assistant_message]

    # Alerts

    async def get_alert(self, alert_id: int) -> Optional[TriageAlert]:
        return await self.db_session.get(TriageAlert, alert_id)

    async def get_open_alert(self, session_id: int) -> Optional[TriageAlert]:
        result = await self.db_session.execute(
            select(TriageAlert)
            .where(
                TriageAlert.session_id == session_id,
                TriageAlert.status.in_(OPEN_ALERT_STATUSES),
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def save_alert(self, alert: TriageAlert) -> TriageAlert:
        try:
            self.db_session.add(alert)
            await self.db_session.commit()
            await self.db_session.refresh(alert)
        except Exception as e:
            await self.db_session.rollback()
            logger.error(f"Error saving triage alert for session {alert.session_id}: {e}")
            raise
        return alert

    async def list_alerts(self, status: Optional[AlertStatus] = None, limit: int = 200) -> List[TriageAlert]:
        query = select(TriageAlert)
        if status:
            query = query.where(TriageAlert.status == status)
        result = await self.db_session.execute(
            query.order_by(TriageAlert.created_at.desc(), TriageAlert.id.desc()).limit(limit)
        )
        return list(result.scalars().all())

    async def list_alerts_for_user(self, user_id: int) -> List[TriageAlert]:
        result = await self.db_session.execute(
            select(TriageAlert)
            .where(TriageAlert.user_id == user_id)
            .order_by(TriageAlert.created_at.desc(), TriageAlert.id.desc())
        )
        return list(result.scalars().all())

    async def list_alerts_for_doctor(self, doctor_id: int) -> List[TriageAlert]:
        result = await self.db_session.execute(
            select(TriageAlert)
            .join(DoctorPatientLink, DoctorPatientLink.patient_id == TriageAlert.user_id)
            .where(DoctorPatientLink.doctor_id == doctor_id)
            .order_by(TriageAlert.created_at.desc(), TriageAlert.id.desc())
        )
        return list(result.scalars().all())
