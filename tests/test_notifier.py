# tests/test_notifier.py
import asyncio
import unittest

from factories import MemoryStore, make_room, wait_until

from party_trivia import events
from party_trivia.client.notifier import POLL, PUSH, RoomNotifier
from party_trivia.errors import SyncFailure


def scripted_stream(*envelopes, then_hang=True):
    """Stream opener yielding the given envelopes, then idling like a quiet server."""
    opened = []

    def open_stream(code):
        opened.append(code)

        async def gen():
            for envelope in envelopes:
                yield envelope
            if then_hang:
                await asyncio.sleep(3600)

        return gen()

    open_stream.opened = opened
    return open_stream


def silent_stream(code):
    async def gen():
        await asyncio.sleep(3600)
        yield events.connected_event()

    return gen()


def broken_stream(code):
    async def gen():
        raise SyncFailure("Event stream for %s refused with 502" % code)
        yield  # pragma: no cover

    return gen()


class PushChannelTests(unittest.IsolatedAsyncioTestCase):
    async def test_identical_documents_are_delivered_once(self):
        room = make_room()
        stream = scripted_stream(
            events.connected_event(),
            events.update_event(room.to_dict()),
            events.update_event(room.to_dict()),
        )
        notifier = RoomNotifier(MemoryStore(), stream, push_timeout=0.5, poll_interval=0.01)
        received = []

        sub = notifier.open("abcde", received.append)
        await wait_until(lambda: received)
        await asyncio.sleep(0.05)
        sub.unsubscribe()

        self.assertEqual(len(received), 1)
        self.assertEqual(received[0], room)
        self.assertEqual(stream.opened, ["ABCDE"])
        self.assertEqual(sub.mode, PUSH)

    async def test_changed_documents_are_all_delivered(self):
        first = make_room()
        second = make_room(players=("host-1", "p-2"))
        stream = scripted_stream(
            events.update_event(first.to_dict()),
            events.update_event(second.to_dict()),
        )
        notifier = RoomNotifier(MemoryStore(), stream, push_timeout=0.5, poll_interval=0.01)
        received = []

        sub = notifier.open("ABCDE", received.append)
        await wait_until(lambda: len(received) == 2)
        sub.unsubscribe()
        self.assertEqual([len(r.players) for r in received], [1, 2])

    async def test_connected_counts_as_first_message(self):
        # Connected arrives in time, the room update only after the push timeout
        room = make_room()

        def open_stream(code):
            async def gen():
                yield events.connected_event()
                await asyncio.sleep(0.1)
                yield events.update_event(room.to_dict())
                await asyncio.sleep(3600)
            return gen()

        store = MemoryStore()
        notifier = RoomNotifier(store, open_stream, push_timeout=0.03, poll_interval=0.01)
        received = []

        sub = notifier.open("ABCDE", received.append)
        await wait_until(lambda: received)
        sub.unsubscribe()
        self.assertEqual(sub.mode, PUSH)
        self.assertEqual(store.gets, 0)

    async def test_error_envelopes_do_not_break_the_stream(self):
        room = make_room()
        stream = scripted_stream(
            events.error_event("Database error"),
            events.update_event(room.to_dict()),
        )
        notifier = RoomNotifier(MemoryStore(), stream, push_timeout=0.5, poll_interval=0.01)
        received = []
        sub = notifier.open("ABCDE", received.append)
        await wait_until(lambda: received)
        sub.unsubscribe()
        self.assertEqual(sub.mode, PUSH)


class FallbackTests(unittest.IsolatedAsyncioTestCase):
    async def test_silent_stream_falls_back_to_polling(self):
        store = MemoryStore()
        room = make_room()
        store.rooms["ABCDE"] = room.to_dict()
        notifier = RoomNotifier(store, silent_stream, push_timeout=0.05, poll_interval=0.01)
        received = []

        sub = notifier.open("ABCDE", received.append)
        await wait_until(lambda: received)
        await asyncio.sleep(0.05)
        sub.unsubscribe()

        self.assertEqual(sub.mode, POLL)
        self.assertGreater(store.gets, 1)
        # Polling keeps returning the same room, delivered only once
        self.assertEqual(received, [room])

    async def test_silent_stream_fallback_is_logged_as_a_warning(self):
        notifier = RoomNotifier(MemoryStore(), silent_stream, push_timeout=0.02, poll_interval=0.01)
        with self.assertLogs("party_trivia.client.notifier", level="WARNING") as logs:
            sub = notifier.open("ABCDE", lambda room: None)
            await wait_until(lambda: sub.mode == POLL)
            sub.unsubscribe()
            await sub.wait_closed()
        self.assertTrue(any("falling back to polling" in line for line in logs.output))

    async def test_stream_error_falls_back_and_reports(self):
        store = MemoryStore()
        store.rooms["ABCDE"] = make_room().to_dict()
        notifier = RoomNotifier(store, broken_stream, push_timeout=1.0, poll_interval=0.01)
        received, errors = [], []

        sub = notifier.open("ABCDE", received.append, errors.append)
        await wait_until(lambda: received)
        sub.unsubscribe()

        self.assertEqual(sub.mode, POLL)
        self.assertEqual(len(errors), 1)
        self.assertIsInstance(errors[0], SyncFailure)

    async def test_stream_end_falls_back(self):
        store = MemoryStore()
        first = make_room()
        stream = scripted_stream(events.update_event(first.to_dict()), then_hang=False)
        notifier = RoomNotifier(store, stream, push_timeout=1.0, poll_interval=0.01)
        received = []

        sub = notifier.open("ABCDE", received.append)
        await wait_until(lambda: sub.mode == POLL)
        store.rooms["ABCDE"] = make_room(players=("host-1", "p-2")).to_dict()
        await wait_until(lambda: len(received) == 2)
        sub.unsubscribe()
        # The push channel is never retried
        self.assertEqual(len(stream.opened), 1)

    async def test_no_stream_goes_straight_to_polling(self):
        store = MemoryStore()
        store.rooms["ABCDE"] = make_room().to_dict()
        notifier = RoomNotifier(store, None, poll_interval=0.01)
        received = []

        sub = notifier.open("ABCDE", received.append)
        await wait_until(lambda: received)
        sub.unsubscribe()
        self.assertEqual(sub.mode, POLL)

    async def test_polling_survives_store_errors(self):
        store = MemoryStore()
        store.fail_gets = SyncFailure("Room store unreachable")
        notifier = RoomNotifier(store, None, poll_interval=0.01)
        received, errors = [], []

        sub = notifier.open("ABCDE", received.append, errors.append)
        await wait_until(lambda: len(errors) >= 2)
        store.fail_gets = None
        store.rooms["ABCDE"] = make_room().to_dict()
        await wait_until(lambda: received)
        sub.unsubscribe()

    async def test_missing_room_delivers_nothing(self):
        store = MemoryStore()
        notifier = RoomNotifier(store, None, poll_interval=0.01)
        received = []
        sub = notifier.open("ABCDE", received.append)
        await wait_until(lambda: store.gets >= 3)
        sub.unsubscribe()
        self.assertEqual(received, [])


class UnsubscribeTests(unittest.IsolatedAsyncioTestCase):
    async def test_unsubscribe_is_idempotent(self):
        store = MemoryStore()
        notifier = RoomNotifier(store, silent_stream, push_timeout=1.0, poll_interval=0.01)
        unsubscribe = notifier.subscribe("ABCDE", lambda room: None)
        await asyncio.sleep(0.01)
        unsubscribe()
        unsubscribe()

    async def test_nothing_arrives_after_unsubscribe(self):
        store = MemoryStore()
        store.rooms["ABCDE"] = make_room().to_dict()
        notifier = RoomNotifier(store, None, poll_interval=0.01)
        received = []

        sub = notifier.open("ABCDE", received.append)
        await wait_until(lambda: received)
        sub.unsubscribe()
        await sub.wait_closed()

        gets = store.gets
        store.rooms["ABCDE"] = make_room(players=("host-1", "p-2")).to_dict()
        await asyncio.sleep(0.05)
        self.assertEqual(len(received), 1)
        self.assertEqual(store.gets, gets)
        self.assertTrue(sub._task.done())

    async def test_unsubscribe_closes_the_stream(self):
        closed = []

        def open_stream(code):
            async def gen():
                try:
                    yield events.connected_event()
                    await asyncio.sleep(3600)
                finally:
                    closed.append(code)
            return gen()

        notifier = RoomNotifier(MemoryStore(), open_stream, push_timeout=1.0, poll_interval=0.01)
        sub = notifier.open("ABCDE", lambda room: None)
        await asyncio.sleep(0.02)
        sub.unsubscribe()
        await sub.wait_closed()
        self.assertEqual(closed, ["ABCDE"])

    async def test_handler_errors_do_not_stop_the_subscription(self):
        store = MemoryStore()
        store.rooms["ABCDE"] = make_room().to_dict()
        notifier = RoomNotifier(store, None, poll_interval=0.01)
        calls = []

        def handler(room):
            calls.append(room)
            raise RuntimeError("boom")

        sub = notifier.open("ABCDE", handler)
        await wait_until(lambda: calls)
        store.rooms["ABCDE"] = make_room(players=("host-1", "p-2")).to_dict()
        await wait_until(lambda: len(calls) == 2)
        sub.unsubscribe()


if __name__ == "__main__":
    unittest.main()
