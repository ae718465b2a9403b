import pytest
from pydantic import ValidationError

from heartwood.commands import Bundle, IncomingMessageValidator, MessageType, Notification, SampleMessage, \
    UpdateScale, StartAnimation, SpawnInstance


def test_bundle_dump_carries_command_tags():
    bundle = Bundle(cmds=[StartAnimation(), UpdateScale(value=0.25), SpawnInstance()])
    data = bundle.model_dump()
    assert data["type"] == MessageType.BUNDLE
    assert [c["cmd"] for c in data["cmds"]] == ["start_animation", "update_scale", "spawn_instance"]
    assert data["cmds"][1]["value"] == 0.25


def test_bundle_validates_commands_by_tag():
    bundle = Bundle.model_validate(dict(cmds=[dict(cmd="update_scale", value=1.5), dict(cmd="stop_animation")]))
    assert bundle.cmds[0] == UpdateScale(value=1.5)


def test_commands_are_immutable():
    command = UpdateScale(value=1.0)
    with pytest.raises(ValidationError):
        command.value = 2.0


def test_incoming_sample():
    message = IncomingMessageValidator.validate_python(dict(type=2, timestamp=3, rate=72.5))
    assert isinstance(message, SampleMessage)
    assert (message.timestamp, message.rate) == (3, 72.5)


def test_incoming_notification():
    message = IncomingMessageValidator.validate_python(dict(type=0, value="ready", error=False))
    assert isinstance(message, Notification)


@pytest.mark.parametrize("data", [
    dict(type=2, timestamp="later", rate=70),
    dict(type=2, rate=70),
    dict(type=1, cmds=[]),
    dict(type=9),
    dict(type=2, timestamp=1, rate=70, extra=True),
])
def test_incoming_rejects_malformed(data):
    with pytest.raises(ValidationError):
        IncomingMessageValidator.validate_python(data)
