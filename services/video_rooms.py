"""
Video room lifecycle registry.

Tracks who is connected to each room and which remote tracks they have
subscribed to, driven by Twilio room status callbacks. The registry lives
in-process; each API worker keeps its own view.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Mapping, Optional

from twilio.request_validator import RequestValidator

from core.config import settings
from core.database import utcnow
from core.logging import get_logger

logger = get_logger(__name__)

ROOM_ENDED = "room-ended"
PARTICIPANT_CONNECTED = "participant-connected"
PARTICIPANT_DISCONNECTED = "participant-disconnected"
TRACK_SUBSCRIBED = ("track-added", "track-subscribed")
TRACK_UNSUBSCRIBED = ("track-removed", "track-unsubscribed")


@dataclass
class TrackState:
    sid: str
    kind: Optional[str] = None


@dataclass
class ParticipantState:
    identity: str
    connected_at: datetime = field(default_factory=utcnow)
    tracks: Dict[str, TrackState] = field(default_factory=dict)


@dataclass
class RoomState:
    name: str
    created_at: datetime = field(default_factory=utcnow)
    participants: Dict[str, ParticipantState] = field(default_factory=dict)

    def snapshot(self) -> dict:
        return {
            "roomName": self.name,
            "createdAt": self.created_at.isoformat(),
            "participants": [
                {
                    "identity": p.identity,
                    "connectedAt": p.connected_at.isoformat(),
                    "tracks": [{"sid": t.sid, "kind": t.kind} for t in p.tracks.values()],
                }
                for p in self.participants.values()
            ],
        }


class RoomRegistry:
    def __init__(self):
        self.rooms: Dict[str, RoomState] = {}

    def _participant(self, room_name: str, identity: str) -> ParticipantState:
        room = self.rooms.setdefault(room_name, RoomState(name=room_name))
        return room.participants.setdefault(identity, ParticipantState(identity=identity))

    def participant_connected(self, room_name: str, identity: str) -> None:
        self._participant(room_name, identity)

    def track_subscribed(self, room_name: str, identity: str, track_sid: str, kind: Optional[str] = None) -> bool:
        """Attach a track; False when it was already attached."""
        participant = self._participant(room_name, identity)
        if track_sid in participant.tracks:
            return False
        participant.tracks[track_sid] = TrackState(sid=track_sid, kind=kind)
        return True

    def track_unsubscribed(self, room_name: str, identity: str, track_sid: str) -> bool:
        room = self.rooms.get(room_name)
        participant = room.participants.get(identity) if room else None
        if not participant:
            return False
        return participant.tracks.pop(track_sid, None) is not None

    def participant_disconnected(self, room_name: str, identity: str) -> int:
        """Drop the participant and all its tracks; returns tracks detached."""
        room = self.rooms.get(room_name)
        if not room:
            return 0
        participant = room.participants.pop(identity, None)
        return len(participant.tracks) if participant else 0

    def room_ended(self, room_name: str) -> bool:
        return self.rooms.pop(room_name, None) is not None

    def get(self, room_name: str) -> Optional[RoomState]:
        return self.rooms.get(room_name)

    def apply_event(
        self,
        event: str,
        room_name: str,
        identity: Optional[str] = None,
        track_sid: Optional[str] = None,
        track_kind: Optional[str] = None,
    ) -> bool:
        """Apply one status callback; returns False for events this registry ignores."""
        if event == ROOM_ENDED:
            self.room_ended(room_name)
        elif event == PARTICIPANT_CONNECTED and identity:
            self.participant_connected(room_name, identity)
        elif event == PARTICIPANT_DISCONNECTED and identity:
            self.participant_disconnected(room_name, identity)
        elif event in TRACK_SUBSCRIBED and identity and track_sid:
            self.track_subscribed(room_name, identity, track_sid, track_kind)
        elif event in TRACK_UNSUBSCRIBED and identity and track_sid:
            self.track_unsubscribed(room_name, identity, track_sid)
        else:
            return False
        logger.debug("Room event applied", room=room_name, status_event=event, identity=identity)
        return True


def validate_twilio_signature(url: str, params: Mapping[str, str], signature: Optional[str]) -> bool:
    """True when no auth token is configured or the signature matches."""
    if not settings.TWILIO_AUTH_TOKEN:
        return True
    if not signature:
        return False
    return RequestValidator(settings.TWILIO_AUTH_TOKEN).validate(url, dict(params), signature)


room_registry = RoomRegistry()
