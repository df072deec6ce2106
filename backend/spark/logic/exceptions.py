"""Typed domain exceptions for room and game rule violations.

Every rejection raised by the room registry, the room action service and the
local engine is a subclass of SparkRuleError. Each subclass carries a stable
``code`` that the message router and HTTP handlers forward to clients, so the
transport layer never has to inspect message strings.
"""


class SparkRuleError(Exception):
    """Base exception for rejected room or game actions.

    Raised before any state is mutated: an action either applies fully and
    publishes its events, or raises one of these and leaves no trace.
    """

    code = "action_failed"
    default_message = "Action failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class RoomNotFoundError(SparkRuleError):
    """No active room matches the given id or join code."""

    code = "room_not_found"
    default_message = "Room not found"


class RoomFullError(SparkRuleError):
    """The room's guest slot is already taken."""

    code = "room_full"
    default_message = "Room is full"


class RoomInactiveError(SparkRuleError):
    """The room has been deactivated and no longer accepts players."""

    code = "room_inactive"
    default_message = "Room is no longer active"


class NotHostError(SparkRuleError):
    """A host-only action was attempted by the guest."""

    code = "not_host"
    default_message = "Only the host can do that"


class NeedsSecondPlayerError(SparkRuleError):
    """The game cannot start before a guest has joined."""

    code = "needs_second_player"
    default_message = "Need another player to start"


class NotAuthorizedError(SparkRuleError):
    """The participant is not a member of the target room."""

    code = "not_authorized"
    default_message = "Player not in this room"


class InvalidPhaseError(SparkRuleError):
    """The action is not allowed in the current game phase."""

    code = "invalid_phase"
    default_message = "Action not allowed right now"


class PowerUpExhaustedError(SparkRuleError):
    """The participant has used up every charge of this power-up."""

    code = "power_up_exhausted"
    default_message = "No uses of that power-up left"


class ServerAtCapacityError(SparkRuleError):
    """The server cannot open another room."""

    code = "server_at_capacity"
    default_message = "Server at capacity"
