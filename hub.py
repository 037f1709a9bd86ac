"""In-memory signaling hub.

Tracks one session per live connection and one room per active room name.
Rooms hold at most one sender and any number of receivers; receivers must
present the room's access code to join. Negotiation messages (offer, answer,
ice-candidate) are relayed between the sender and its receivers without
being inspected.
"""
from abc import ABC, abstractmethod
import asyncio
import json
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Optional, Set, Union

from pydantic import ValidationError

from constants import ROOM_CODE_MAX, ROOM_CODE_MIN
from logging_config import get_logger
from message_types import (
    JOIN,
    NEGOTIATION_TYPES,
    REASON_ALREADY_JOINED,
    REASON_CODE_REQUIRED,
    REASON_INVALID_CODE,
    REGISTER_ID,
)
from schemas.messages import (
    HubMessage,
    JoinDeniedMessage,
    JoinedMessage,
    JoinRequest,
    ReceiverLeftMessage,
    RegisterIdRequest,
    RoleChangedMessage,
    RoomCodeMessage,
    SenderLeftMessage,
    SenderReadyMessage,
)

logger = get_logger(__name__)


class Role(str, Enum):
    UNASSIGNED = "unassigned"
    SENDER = "sender"
    RECEIVER = "receiver"


class Connection(ABC):
    """Interface the hub needs from a transport connection."""

    @property
    @abstractmethod
    def is_open(self) -> bool:
        ...

    @abstractmethod
    async def send_json(self, message: dict):
        ...

    @abstractmethod
    async def close(self):
        ...


@dataclass(eq=False)
class Session:
    connection: Connection
    role: Role = Role.UNASSIGNED
    peer_id: Optional[str] = None
    room_name: Optional[str] = None
    # outbound messages, drained in order by the session's writer task
    outbox: asyncio.Queue = field(default_factory=asyncio.Queue, repr=False)
    writer: Optional[asyncio.Task] = field(default=None, repr=False)


@dataclass(eq=False)
class Room:
    name: str
    access_code: str
    sender: Optional[Session] = None
    receivers: Set[Session] = field(default_factory=set)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)
    # set once the room has been removed from the registry
    discarded: bool = False

    @property
    def is_empty(self) -> bool:
        return self.sender is None and not self.receivers

    def viewers(self) -> str:
        count = len(self.receivers)
        return f"{count} viewer{'' if count == 1 else 's'}"


def generate_room_code() -> str:
    return str(random.randint(ROOM_CODE_MIN, ROOM_CODE_MAX))


def check_room_code(code, access_code: str) -> Optional[str]:
    """Return a join-denied reason, or None if `code` opens the room."""
    if code is None or code == "":
        return REASON_CODE_REQUIRED
    if isinstance(code, bool) or not isinstance(code, (str, int)):
        return REASON_INVALID_CODE
    if str(code) != access_code:
        return REASON_INVALID_CODE
    return None


class SignalingHub:
    def __init__(self, code_generator: Optional[Callable[[], str]] = None):
        self._rooms: Dict[str, Room] = {}
        # side table: connection handle -> session state
        self._sessions: Dict[Connection, Session] = {}
        self._registry_lock = asyncio.Lock()
        self._generate_code = code_generator or generate_room_code

    # -- lookups ------------------------------------------------------------

    def get_room(self, name: str) -> Optional[Room]:
        return self._rooms.get(name)

    def get_session(self, connection: Connection) -> Optional[Session]:
        return self._sessions.get(connection)

    @property
    def room_count(self) -> int:
        return len(self._rooms)

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    # -- connection lifecycle ----------------------------------------------

    def connect(self, connection: Connection) -> Session:
        """Register a connection. Must be called from a running event loop."""
        session = Session(connection=connection)
        session.writer = asyncio.create_task(self._write_loop(session))
        self._sessions[connection] = session
        logger.debug(f"Connection registered ({len(self._sessions)} live)")
        return session

    async def handle_message(self, connection: Connection, raw: Union[str, bytes, None]):
        """Parse one inbound frame and dispatch it. Malformed frames are dropped."""
        session = self._sessions.get(connection)
        if session is None or raw is None:
            return

        try:
            message = json.loads(raw)
        except ValueError:
            logger.debug("Dropping unparsable message")
            return
        if not isinstance(message, dict):
            logger.debug("Dropping non-object message")
            return

        message_type = message.get("type")
        if not isinstance(message_type, str):
            logger.debug(f"Dropping message with non-string type: {message_type!r}")
            return
        if message_type == REGISTER_ID:
            self.register_id(session, message)
        elif message_type == JOIN:
            await self.join(session, message)
        elif message_type in NEGOTIATION_TYPES:
            await self.relay(session, message)
        else:
            logger.debug(f"Dropping message with unknown type: {message_type!r}")

    async def disconnect(self, connection: Connection):
        """Remove a closed connection from its room and notify the other side.

        Safe to call more than once and for connections that never joined.
        """
        session = self._sessions.pop(connection, None)
        if session is None:
            return
        try:
            await self._leave_room(session)
        finally:
            await self._stop_writer(session)

    async def _leave_room(self, session: Session):
        if session.room_name is None:
            return

        room = self._rooms.get(session.room_name)
        if room is None:
            return

        async with room.lock:
            if room.discarded:
                return

            if session.role is Role.SENDER and room.sender is session:
                room.sender = None
                logger.info(f"[{room.name}] Video feed stopped")
                for receiver in list(room.receivers):
                    self._deliver(receiver, SenderLeftMessage())
            elif session in room.receivers:
                room.receivers.discard(session)
                logger.info(f"[{room.name}] Receiver disconnected ({room.viewers()} remaining)")
                if room.sender is not None:
                    self._deliver(room.sender, ReceiverLeftMessage(peerId=session.peer_id))

            session.role = Role.UNASSIGNED
            session.room_name = None
            await self._discard_if_empty(room)

    async def close_all(self):
        """Close every live connection. Reconciliation runs from each connection's own close path."""
        connections = list(self._sessions)
        logger.info(f"Closing {len(connections)} connection(s)")
        for connection in connections:
            try:
                await connection.close()
            except Exception as e:
                logger.debug(f"Error closing connection: {e}")

    async def drain(self):
        """Wait until every message queued for live connections has been handed to its transport."""
        await asyncio.gather(*(session.outbox.join() for session in list(self._sessions.values())))

    # -- operations ---------------------------------------------------------

    def register_id(self, session: Session, message: dict):
        # last registration wins
        try:
            request = RegisterIdRequest.model_validate(message)
        except ValidationError:
            logger.debug("Dropping register-id without a usable peerId")
            return
        session.peer_id = request.peerId

    async def join(self, session: Session, message: dict):
        try:
            request = JoinRequest.model_validate(message)
        except ValidationError as e:
            logger.debug(f"Dropping malformed join: {e.error_count()} error(s)")
            return

        if session.room_name is not None:
            logger.warning(
                f"[{session.room_name}] Rejected second join (to {request.room!r}) on an already joined connection"
            )
            self._deliver(session, JoinDeniedMessage(reason=REASON_ALREADY_JOINED))
            return

        role = Role(request.role)
        while True:
            room = await self._get_or_create_room(request.room)
            async with room.lock:
                # removed from the registry while we waited for the lock
                if room.discarded:
                    continue

                if role is Role.RECEIVER:
                    reason = check_room_code(request.code, room.access_code)
                    if reason is not None:
                        logger.warning(f"[{room.name}] Join denied: {reason}")
                        self._deliver(session, JoinDeniedMessage(reason=reason))
                        await self._discard_if_empty(room)
                        return
                    self._admit_receiver(room, session)
                else:
                    self._admit_sender(room, session)
                return

    async def relay(self, session: Session, message: dict):
        """Forward a negotiation message between the room's sender and receivers."""
        if session.room_name is None or session.role is Role.UNASSIGNED:
            logger.debug(f"Dropping {message.get('type')} from a connection outside any room")
            return

        room = self._rooms.get(session.room_name)
        if room is None:
            return

        forwarded = dict(message)
        forwarded.pop("from", None)
        if session.peer_id is not None:
            forwarded["from"] = session.peer_id

        async with room.lock:
            if room.discarded:
                return

            if session.role is Role.SENDER:
                target = message.get("to")
                if target:
                    for receiver in room.receivers:
                        if receiver.peer_id == target:
                            self._deliver(receiver, forwarded)
                            break
                    else:
                        logger.debug(f"[{room.name}] No receiver with peer id {target!r}")
                else:
                    for receiver in list(room.receivers):
                        self._deliver(receiver, forwarded)
            else:
                if room.sender is None:
                    logger.debug(f"[{room.name}] No sender to receive {message.get('type')}")
                    return
                self._deliver(room.sender, forwarded)

    # -- admission ----------------------------------------------------------

    def _admit_sender(self, room: Room, session: Session):
        previous = room.sender
        demoted = previous is not None and previous is not session
        if demoted:
            previous.role = Role.RECEIVER
            room.receivers.add(previous)
            logger.info(f"[{room.name}] Previous sender demoted to receiver")

        room.sender = session
        session.role = Role.SENDER
        session.room_name = room.name
        logger.info(f"[{room.name}] Video feed started (code: {room.access_code})")

        self._deliver(session, JoinedMessage(role=Role.SENDER.value))
        self._deliver(session, RoomCodeMessage(code=room.access_code))
        if demoted:
            self._deliver(previous, RoleChangedMessage(newRole=Role.RECEIVER.value))
        for receiver in list(room.receivers):
            self._deliver(receiver, SenderReadyMessage())

    def _admit_receiver(self, room: Room, session: Session):
        room.receivers.add(session)
        session.role = Role.RECEIVER
        session.room_name = room.name
        logger.info(f"[{room.name}] Receiver joined ({room.viewers()})")

        self._deliver(session, JoinedMessage(role=Role.RECEIVER.value))
        if room.sender is not None:
            self._deliver(session, SenderReadyMessage())

    # -- registry -----------------------------------------------------------

    async def _get_or_create_room(self, name: str) -> Room:
        async with self._registry_lock:
            room = self._rooms.get(name)
            if room is None:
                room = Room(name=name, access_code=self._generate_code())
                self._rooms[name] = room
                logger.info(f"[{name}] Room created")
            return room

    async def _discard_if_empty(self, room: Room):
        # caller holds room.lock
        if not room.is_empty:
            return
        async with self._registry_lock:
            if self._rooms.get(room.name) is room:
                del self._rooms[room.name]
            room.discarded = True
        logger.info(f"[{room.name}] Room removed")

    # -- delivery -----------------------------------------------------------

    def _deliver(self, session: Session, message: Union[HubMessage, dict]):
        # callers may hold a room lock; only enqueue here
        payload = message.to_dict() if isinstance(message, HubMessage) else message
        session.outbox.put_nowait(payload)

    async def _write_loop(self, session: Session):
        connection = session.connection
        while True:
            payload = await session.outbox.get()
            try:
                if not connection.is_open:
                    logger.debug(f"Skipping {payload.get('type')} to a closed connection")
                    continue
                await connection.send_json(payload)
            except Exception as e:
                logger.warning(f"Failed to deliver {payload.get('type')} to peer {session.peer_id}: {e}")
            finally:
                session.outbox.task_done()

    async def _stop_writer(self, session: Session):
        writer = session.writer
        if writer is None or writer.done():
            return
        writer.cancel()
        try:
            await writer
        except asyncio.CancelledError:
            pass
