import asyncio

from conftest import FakeWebSocket
from heartwood.commands import MessageType, StartAnimation, UpdateScale
from heartwood.growth import Sample
from heartwood.remote import HeartbeatTimeoutException, RemoteRenderer


def test_samples_reach_callbacks_and_bad_frames_are_skipped():
    async def scenario():
        ws = FakeWebSocket()
        received = []

        async def on_sample(sample):
            received.append(sample)

        async with RemoteRenderer(ws, heartbeat_timeout=5) as remote:
            remote.sample_callbacks.append(on_sample)
            ws.inbound.put_nowait(b"\xc1")
            ws.inbound.put_nowait("not msgpack")
            ws.push(dict(type=2, timestamp="soon", rate=70))
            ws.push(dict(type=0, value="headset ready"))
            ws.push(dict(type=2, timestamp=1, rate=70.5))
            ws.inbound.put_nowait(None)
            await asyncio.wait_for(remote.wait_closed(), 5)
        return remote, received

    remote, received = asyncio.run(scenario())
    assert received == [Sample(timestamp=1, rate=70.5)]
    assert remote.closed
    assert remote.exception is None


def test_execute_sends_one_bundle():
    async def scenario():
        ws = FakeWebSocket()
        async with RemoteRenderer(ws, heartbeat_timeout=5) as remote:
            await remote.execute(StartAnimation(), UpdateScale(value=0.3))
            await remote.execute()
            await asyncio.sleep(0)
            ws.inbound.put_nowait(None)
            await remote.wait_closed()
        return ws.sent

    sent = asyncio.run(scenario())
    bundles = [frame for frame in sent if frame["type"] == MessageType.BUNDLE]
    assert len(bundles) == 1
    assert bundles[0]["cmds"] == [dict(cmd="start_animation"), dict(cmd="update_scale", value=0.3)]
    assert any(frame["type"] == MessageType.NOTIFICATION for frame in sent)


def test_silent_headset_times_out():
    async def scenario():
        ws = FakeWebSocket()
        async with RemoteRenderer(ws, heartbeat_timeout=0.05) as remote:
            await asyncio.wait_for(remote.wait_closed(), 5)
        return remote

    remote = asyncio.run(scenario())
    assert isinstance(remote.exception, HeartbeatTimeoutException)


def test_execute_after_close_is_noop():
    async def scenario():
        ws = FakeWebSocket()
        async with RemoteRenderer(ws, heartbeat_timeout=5) as remote:
            ws.inbound.put_nowait(None)
            await remote.wait_closed()
            sent_before = len(ws.sent)
            await remote.execute(StartAnimation())
        return sent_before, ws.sent

    sent_before, sent = asyncio.run(scenario())
    assert len(sent) == sent_before
