from enum import IntEnum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, JsonValue, TypeAdapter

from heartwood.time import utc_ts


class Command(BaseModel):
    """A render instruction for the headset. Applied in emission order."""
    model_config = ConfigDict(extra="forbid", frozen=True)


class UpdateScale(Command):
    cmd: Literal["update_scale"] = Field(default="update_scale", frozen=True)
    value: float


class StartAnimation(Command):
    cmd: Literal["start_animation"] = Field(default="start_animation", frozen=True)


class StopAnimation(Command):
    cmd: Literal["stop_animation"] = Field(default="stop_animation", frozen=True)


class SpawnInstance(Command):
    cmd: Literal["spawn_instance"] = Field(default="spawn_instance", frozen=True)


AnyCommand = Annotated[
    UpdateScale | StartAnimation | StopAnimation | SpawnInstance,
    Field(discriminator="cmd")
]


class MessageType(IntEnum):
    NOTIFICATION = 0
    BUNDLE = 1
    SAMPLE = 2


class Message(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ts: int = Field(default_factory=utc_ts)


class Notification(Message):
    type: Literal[MessageType.NOTIFICATION] = Field(default=MessageType.NOTIFICATION, frozen=True)
    value: JsonValue = None
    error: bool = False


class Bundle(Message):
    type: Literal[MessageType.BUNDLE] = Field(default=MessageType.BUNDLE, frozen=True)
    cmds: list[AnyCommand] = Field(default_factory=list)


class SampleMessage(Message):
    type: Literal[MessageType.SAMPLE] = Field(default=MessageType.SAMPLE, frozen=True)
    timestamp: int
    rate: float


IncomingMessage = Annotated[
    Notification | SampleMessage,
    Field(discriminator="type")
]

IncomingMessageValidator = TypeAdapter(IncomingMessage)
