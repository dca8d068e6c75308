"""Socket.IO event names."""

# Inbound
DRAFT_JOIN = "draft:join"
DRAFT_START = "draft:start"
DRAFT_PICK = "draft:pick"
DRAFT_PAUSE = "draft:pause"
DRAFT_RESUME = "draft:resume"
DRAFT_STATE_REQUEST = "draft:state"
LOBBY_JOIN = "lobby:join"
LOBBY_LEAVE = "lobby:leave"
LOBBY_READY = "lobby:ready"
LOBBY_ADD_BOTS = "lobby:addBots"
LOBBY_KICK = "lobby:kick"
LOBBY_START = "lobby:start"
BOT_QUICKPICK = "bot:quickpick"

# Outbound
CONNECTED = "connected"
DRAFT_STATE = "draft:state"
DRAFT_TIMER = "draft:timer"
DRAFT_AUTOPICK = "draft:autopick"
DRAFT_SKIPPED = "draft:skipped"
DRAFT_COMPLETED = "draft:completed"
DRAFT_ERROR = "draft:error"
DRAFT_RECONNECT_WAIT = "draft:reconnect_wait"
PLAYER_RECONNECTED = "player:reconnected"
DRAFT_PRESENCE = "draft:presence"
DRAFT_STARTING = "draft:starting"
DRAFT_YOUR_POSITION = "draft:yourPosition"
LOBBY_PARTICIPANTS = "lobby:participants"
LOBBY_ROOM_ASSIGNED = "lobby:roomAssigned"
LOBBY_KICKED = "lobby:kicked"
LOBBY_ERROR = "lobby:error"


def lobby_channel(room_id: str) -> str:
    return f"lobby:{room_id}"
