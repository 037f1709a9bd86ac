from pydantic import BaseModel, Field
from typing import Any, Literal, Optional

from message_types import (
    JOIN_DENIED,
    JOINED,
    RECEIVER_LEFT,
    ROLE_CHANGED,
    ROOM_CODE,
    SENDER_LEFT,
    SENDER_READY,
)

JoinRole = Literal["sender", "receiver"]


# Inbound

class RegisterIdRequest(BaseModel):
    peerId: str = Field(min_length=1)

class JoinRequest(BaseModel):
    room: str = Field(min_length=1)
    role: JoinRole
    # compared against the room's access code by the hub, any type accepted here
    code: Optional[Any] = None


# Outbound

class HubMessage(BaseModel):
    type: str

    def to_dict(self) -> dict:
        return self.model_dump(exclude_none=True)

class JoinedMessage(HubMessage):
    type: Literal["joined"] = JOINED
    role: JoinRole

class JoinDeniedMessage(HubMessage):
    type: Literal["join-denied"] = JOIN_DENIED
    reason: str

class RoomCodeMessage(HubMessage):
    type: Literal["room-code"] = ROOM_CODE
    code: str

class SenderReadyMessage(HubMessage):
    type: Literal["sender-ready"] = SENDER_READY

class SenderLeftMessage(HubMessage):
    type: Literal["sender-left"] = SENDER_LEFT

class ReceiverLeftMessage(HubMessage):
    type: Literal["receiver-left"] = RECEIVER_LEFT
    peerId: Optional[str] = None

class RoleChangedMessage(HubMessage):
    type: Literal["role-changed"] = ROLE_CHANGED
    newRole: JoinRole
