# tests/test_room_store.py
import unittest

from factories import make_repository, make_room

from party_trivia import room_state
from party_trivia.models import Role, Room, RoomStatus


class RoomRepositoryTests(unittest.TestCase):
    def setUp(self):
        self.repo = make_repository()

    def test_missing_room_is_none(self):
        self.assertIsNone(self.repo.get("NOPE1"))
        self.assertIsNone(self.repo.get_with_marker("NOPE1"))

    def test_round_trip_keeps_every_field(self):
        room = make_room(players=("host-1", "p-2"), questions=2)
        room.status = RoomStatus.QUESTION
        room.generated_theme = "Pirate facts"
        room.questions[1].explanation = "Because."
        room = room_state.submit_answer(room, "p-2", 0, 6)
        room = room_state.end_question(room, Role.HOST)

        self.repo.put(room)
        loaded = self.repo.get(room.code)

        self.assertEqual(loaded, room)
        self.assertEqual(loaded.to_dict(), room.to_dict())

    def test_codes_are_case_insensitive(self):
        self.repo.put(make_room(code="abcde"))
        self.assertEqual(self.repo.get("ABCDE").code, "ABCDE")
        self.assertIsNotNone(self.repo.get("aBcDe"))

    def test_put_replaces_the_whole_document(self):
        room = make_room(players=("host-1", "p-2"))
        self.repo.put(room)
        shrunk = make_room(players=("host-1",))
        self.repo.put(shrunk)
        self.assertEqual([p.id for p in self.repo.get(room.code).players], ["host-1"])

    def test_revision_changes_on_every_write(self):
        room = make_room()
        first = self.repo.put(room)
        second = self.repo.put(room)
        self.assertEqual(first, 1)
        self.assertEqual(second, 2)
        self.assertEqual(self.repo.get_with_marker(room.code).revision, 2)

    def test_optional_fields_are_omitted_on_the_wire(self):
        room = make_room()
        self.repo.put(room)
        doc = self.repo.get(room.code).to_dict()
        self.assertNotIn("generatedTheme", doc)
        self.assertEqual(Room.from_dict(doc), room)


if __name__ == "__main__":
    unittest.main()
