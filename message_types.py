# client -> hub
REGISTER_ID = "register-id"
JOIN = "join"

# negotiation messages, relayed verbatim in both directions
OFFER = "offer"
ANSWER = "answer"
ICE_CANDIDATE = "ice-candidate"
NEGOTIATION_TYPES = frozenset({OFFER, ANSWER, ICE_CANDIDATE})

# hub -> client
JOINED = "joined"
JOIN_DENIED = "join-denied"
ROOM_CODE = "room-code"
SENDER_READY = "sender-ready"
SENDER_LEFT = "sender-left"
RECEIVER_LEFT = "receiver-left"
ROLE_CHANGED = "role-changed"

# join-denied reasons
REASON_CODE_REQUIRED = "Room code required"
REASON_INVALID_CODE = "Invalid room code"
REASON_ALREADY_JOINED = "Already joined"
