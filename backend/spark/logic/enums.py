"""
Enum definitions for Spark & Tell game concepts.
"""

from enum import Enum, IntEnum


class Category(IntEnum):
    """Question topics a die roll can land on."""

    ICEBREAKER = 1
    DREAMS = 2
    WOULD_YOU_RATHER = 3
    STORY_TIME = 4
    SPICY = 5
    DEEP_DIVE = 6

    @property
    def display_name(self) -> str:
        return CATEGORY_NAMES[self]


CATEGORY_NAMES: dict[Category, str] = {
    Category.ICEBREAKER: "Icebreakers",
    Category.DREAMS: "Dreams & Adventures",
    Category.WOULD_YOU_RATHER: "Would You Rather",
    Category.STORY_TIME: "Story Time",
    Category.SPICY: "Spicy",
    Category.DEEP_DIVE: "Deep Dive",
}

ALL_CATEGORIES: tuple[Category, ...] = tuple(Category)


class GamePhase(str, Enum):
    """Stage of a game session."""

    LANDING = "landing"
    SETUP = "setup"
    PLAYING = "playing"
    AWARDING_SPARKS = "awarding-sparks"
    MINI_GAME = "mini-game"
    ENDED = "ended"


# phases in which turn actions (roll, award, power-ups, next turn) are accepted
IN_GAME_PHASES: frozenset[GamePhase] = frozenset(
    {GamePhase.PLAYING, GamePhase.AWARDING_SPARKS, GamePhase.MINI_GAME},
)


class DateType(str, Enum):
    """Relationship stage used to tune the question mix."""

    FIRST = "first"
    DATING = "dating"
    LONGTERM = "longterm"
    CUSTOM = "custom"


class GameLength(str, Enum):
    """Session length preset."""

    QUICK = "quick"
    STANDARD = "standard"
    MARATHON = "marathon"


class QuestionType(str, Enum):
    """How a question is meant to be answered."""

    STANDARD = "standard"
    CHALLENGE = "challenge"
    BOTH_ANSWER = "both-answer"


class SparkType(str, Enum):
    """Reactions one participant can award the other after an answer."""

    MADE_ME_LAUGH = "made-me-laugh"
    ADORABLE = "adorable"
    DIDNT_KNOW = "didnt-know"
    CONNECTION = "connection"
    HOT = "hot"
    BRAVE = "brave"
    SAME = "same"


class PowerUpType(str, Enum):
    """Limited-use modifiers that alter turn flow."""

    REVERSE = "reverse"
    BOTH_ANSWER = "both-answer"
    SKIP = "skip"
    RE_ROLL = "re-roll"


class ConnectionStatus(str, Enum):
    """Client-side view of the link to the room."""

    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    ERROR = "error"
