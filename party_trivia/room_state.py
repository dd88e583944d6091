# party_trivia/room_state.py
"""
Room state machine.

Every transition takes the current Room and returns an updated copy; nothing
here performs I/O. Host-only transitions take the caller's Role so the
capability policy stays with the caller.

    lobby -> generating -> question <-> results -> final -> (reset) -> lobby
"""
import math
from collections import Counter
from typing import Dict, List, Optional, Set, Tuple

from pydantic import ValidationError

from party_trivia.config import Config
from party_trivia.errors import InvalidAction, InvalidConfig, NotAuthorized
from party_trivia.ids import normalize_code
from party_trivia.models import (
    DIFFICULTY_POINTS,
    Difficulty,
    GameMode,
    Player,
    Question,
    Response,
    Role,
    Room,
    RoomStatus,
)
from party_trivia.schemas import RoomSetup


def _require_host(role: Role, action: str):
    if role != Role.HOST:
        raise NotAuthorized(f"Only the host can {action}")


def _require_status(room: Room, action: str, *allowed: RoomStatus):
    if room.status not in allowed:
        expected = " or ".join(s.value for s in allowed)
        raise InvalidAction(f"Cannot {action} while room is {room.status.value} (expected {expected})")


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_gain(difficulty: Difficulty, correct: bool, remaining: float) -> int:
    """Points for one answer: base points for the difficulty plus a speed bonus."""
    if not correct:
        return 0
    return DIFFICULTY_POINTS[Difficulty(difficulty)] + max(0, round_half_up(remaining))


# ------------------------------
# Setup
# ------------------------------
def validate_setup(setup: RoomSetup):
    if not Config.QUESTION_COUNT_MIN <= setup.question_count <= Config.QUESTION_COUNT_MAX:
        raise InvalidConfig(
            f"Question count must be between {Config.QUESTION_COUNT_MIN} and {Config.QUESTION_COUNT_MAX}"
        )
    if not Config.TIME_PER_QUESTION_MIN <= setup.time_per_question <= Config.TIME_PER_QUESTION_MAX:
        raise InvalidConfig(
            f"Time per question must be between {Config.TIME_PER_QUESTION_MIN} "
            f"and {Config.TIME_PER_QUESTION_MAX} seconds"
        )
    if not (setup.host_name or "").strip():
        raise InvalidConfig("Host name is required")


def resolve_theme(setup: RoomSetup) -> str:
    """Pick the stored theme for a mode; emoji and personality use fixed labels."""
    if setup.game_mode == GameMode.CUSTOM:
        return (setup.custom_theme or "").strip() or "Custom Trivia"
    if setup.game_mode == GameMode.EMOJI:
        return "Emoji Decoder"
    if setup.game_mode == GameMode.PERSONALITY:
        return "Personality Mode"
    return setup.theme


def create_room(setup: RoomSetup, code: str, host_id: str) -> Room:
    """A fresh lobby whose only player is the host."""
    validate_setup(setup)
    host_name = setup.host_name.strip()
    return Room(
        code=code,
        host_name=host_name,
        game_mode=setup.game_mode,
        theme=resolve_theme(setup),
        ai_model=setup.ai_model,
        difficulty=setup.difficulty,
        question_count=setup.question_count,
        time_per_question=setup.time_per_question,
        players=[Player(id=host_id, name=host_name)],
    )


def room_from_share_config(config: dict) -> Room:
    """
    Rebuild an empty lobby from a share-link config. The config is checked
    against the same bounds as a freshly created room.
    """
    try:
        setup = RoomSetup(
            host_name=config.get("hostName") or "Host",
            game_mode=config.get("gameMode") or GameMode.STANDARD,
            theme=config.get("theme") or "General Knowledge",
            ai_model=config.get("aiModel") or Config.DEFAULT_AI_MODEL,
            difficulty=config.get("difficulty") or Difficulty.MEDIUM,
            question_count=config.get("questionCount") or 8,
            time_per_question=config.get("timePerQuestion") or 8,
        )
    except ValidationError as e:
        raise InvalidConfig(f"Share link config is invalid ({e.error_count()} bad fields)") from e
    validate_setup(setup)

    return Room(
        code=normalize_code(str(config["code"])),
        host_name=setup.host_name.strip(),
        game_mode=setup.game_mode,
        theme=setup.theme,
        ai_model=setup.ai_model,
        difficulty=setup.difficulty,
        question_count=setup.question_count,
        time_per_question=setup.time_per_question,
    )


def share_config(room: Room) -> dict:
    return {
        "code": room.code,
        "hostName": room.host_name,
        "gameMode": room.game_mode.value,
        "theme": room.theme,
        "aiModel": room.ai_model,
        "difficulty": room.difficulty.value,
        "questionCount": room.question_count,
        "timePerQuestion": room.time_per_question,
    }


# ------------------------------
# Transitions
# ------------------------------
def join_room(room: Room, player_id: str, name: str) -> Room:
    """
    Append a player. Joins are never de-duplicated and are accepted in any
    state; a player joining mid-game simply has no response until the next round.
    """
    updated = room.model_copy(deep=True)
    updated.players.append(Player(id=player_id, name=(name or "").strip() or "Mystery Player"))
    return updated


def begin_generation(room: Room, role: Role) -> Room:
    _require_host(role, "start the game")
    _require_status(room, "start the game", RoomStatus.LOBBY)
    updated = room.model_copy(deep=True)
    updated.status = RoomStatus.GENERATING
    return updated


def begin_questions(room: Room, role: Role, questions: List[Question],
                    generated_theme: Optional[str] = None) -> Room:
    """Install the generated questions and open the first one."""
    _require_host(role, "start the game")
    _require_status(room, "load questions", RoomStatus.GENERATING)
    if not questions:
        raise InvalidAction("Cannot start a round without questions")
    updated = room.model_copy(deep=True)
    updated.questions = [q.model_copy(deep=True) for q in questions]
    if generated_theme:
        updated.generated_theme = generated_theme
    updated.current_index = 0
    updated.status = RoomStatus.QUESTION
    updated.responses = {}
    updated.last_gain = {}
    return updated


def submit_answer(room: Room, player_id: str, answer_index: int, time_left: float) -> Room:
    """
    Record (or overwrite) the player's answer to the current question. Only
    the submitter's key is rewritten, on top of the latest observed document.
    """
    _require_status(room, "answer", RoomStatus.QUESTION)
    if time_left <= 0:
        raise InvalidAction("Time is up for this question")
    if room.find_player(player_id) is None:
        raise InvalidAction(f"Player {player_id} is not in room {room.code}")
    question = room.current_question
    if question is None or not 0 <= answer_index < len(question.choices):
        raise InvalidAction(f"Answer {answer_index} is not a valid choice")

    voted_for = None
    if room.game_mode == GameMode.PERSONALITY:
        chosen = question.choices[answer_index]
        target = next((p for p in room.players if p.name == chosen), None)
        voted_for = target.id if target else None

    updated = room.model_copy(deep=True)
    updated.responses[player_id] = Response(
        answer_index=answer_index, remaining=time_left, voted_for=voted_for
    )
    return updated


def plurality_choices(responses: Dict[str, Response]) -> Set[int]:
    """Choice indexes that received the most votes (all of them on a tie)."""
    tally = Counter(r.answer_index for r in responses.values())
    if not tally:
        return set()
    top = max(tally.values())
    return {idx for idx, count in tally.items() if count == top}


def is_correct(room: Room, response: Optional[Response], winners: Optional[Set[int]] = None) -> bool:
    if response is None:
        return False
    if room.game_mode == GameMode.PERSONALITY:
        if winners is None:
            winners = plurality_choices(room.responses)
        return response.answer_index in winners
    question = room.current_question
    return question is not None and response.answer_index == question.correct_index


def end_question(room: Room, role: Role) -> Room:
    """Score the current question for every player and close it."""
    _require_host(role, "end the question")
    _require_status(room, "end the question", RoomStatus.QUESTION)
    if room.current_question is None:
        raise InvalidAction("No current question to score")

    winners = plurality_choices(room.responses) if room.game_mode == GameMode.PERSONALITY else None
    updated = room.model_copy(deep=True)
    last_gain: Dict[str, int] = {}
    for player in updated.players:
        response = room.responses.get(player.id)
        correct = is_correct(room, response, winners)
        gain = compute_gain(room.difficulty, correct, response.remaining) if correct else 0
        player.score += gain
        last_gain[player.id] = gain

    updated.last_gain = last_gain
    updated.status = RoomStatus.FINAL if room.is_last_question else RoomStatus.RESULTS
    return updated


def next_question(room: Room, role: Role) -> Room:
    _require_host(role, "advance the game")
    _require_status(room, "advance", RoomStatus.RESULTS)
    updated = room.model_copy(deep=True)
    next_index = room.current_index + 1
    if next_index >= len(room.questions):
        updated.status = RoomStatus.FINAL
        return updated
    updated.current_index = next_index
    updated.status = RoomStatus.QUESTION
    updated.responses = {}
    return updated


def reset_scores(room: Room, role: Role, reset_points: bool = False) -> Room:
    """Send a finished room back to the lobby, optionally zeroing every score."""
    _require_host(role, "reset the game")
    _require_status(room, "reset", RoomStatus.FINAL)
    updated = room.model_copy(deep=True)
    if reset_points:
        for player in updated.players:
            player.score = 0
    updated.current_index = 0
    updated.questions = []
    updated.responses = {}
    updated.last_gain = {}
    updated.status = RoomStatus.LOBBY
    return updated


# ------------------------------
# Derived views
# ------------------------------
def leaderboard(room: Room) -> List[Player]:
    """Players by score, highest first; ties keep join order."""
    return sorted(room.players, key=lambda p: -p.score)


def round_result(room: Room, player_id: str) -> Optional[Tuple[bool, int]]:
    """(was_correct, gain) for one player on the current question."""
    if room.current_question is None or room.find_player(player_id) is None:
        return None
    response = room.responses.get(player_id)
    return is_correct(room, response), room.last_gain.get(player_id, 0)
