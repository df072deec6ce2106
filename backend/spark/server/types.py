from pydantic import BaseModel, ConfigDict, Field, field_validator

from spark.messaging.types import validate_player_name


class CreateRoomRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    host_name: str = Field(min_length=1, max_length=50)

    @field_validator("host_name")
    @classmethod
    def _validate_host_name(cls, v: str) -> str:
        return validate_player_name(v)


class JoinRoomRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    room_code: str = Field(min_length=6, max_length=6, pattern=r"^[a-zA-Z0-9]+$")
    player_name: str = Field(min_length=1, max_length=50)

    @field_validator("player_name")
    @classmethod
    def _validate_player_name(cls, v: str) -> str:
        return validate_player_name(v)
