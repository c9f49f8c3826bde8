from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

# Match phases
WAITING = 'waiting'
SETTING_FIELD = 'setting_field'
BATTING = 'batting'
FINISHED = 'finished'

MAX_PLAYERS = 2


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class DeliveryRecord:
    ball_number: int
    innings: int
    rotation: float
    batsman_choice: str
    timestamp: datetime
    runs_so_far: int  # innings total before this ball
    runs_after: int

    def to_dict(self):
        return {
            'ball_number': self.ball_number,
            'innings': self.innings,
            'rotation': self.rotation,
            'batsman_choice': self.batsman_choice,
            'timestamp': self.timestamp.isoformat(),
            'runs_so_far': self.runs_so_far,
            'runs_after': self.runs_after,
        }


class Match:
    """State of one two-innings match, keyed by room id in the engine.

    ``runs`` and ``wickets`` hold one counter per innings (index 0 for the
    first innings) so first-innings figures stay visible after the switch.
    """

    def __init__(self, room_id: str, creator_id: str, ball_quota: int, wicket_quota: int):
        self.room_id = room_id
        self.players: List[str] = [creator_id]
        self.phase = WAITING
        self.innings = 1
        self.current_ball = 1
        self.total_balls = ball_quota
        self.original_ball_quota = ball_quota
        self.wicket_quota = wicket_quota
        self.bowler = creator_id
        self.pending_rotation: Optional[float] = None
        self.pending_shot_choice: Optional[str] = None
        self.runs = [0, 0]
        self.wickets = [0, 0]
        self.delivery_history: List[DeliveryRecord] = []

    @property
    def batsman(self) -> Optional[str]:
        for p in self.players:
            if p != self.bowler:
                return p
        return None

    @property
    def in_progress(self) -> bool:
        return self.phase in (SETTING_FIELD, BATTING)

    @property
    def current_runs(self) -> int:
        return self.runs[self.innings - 1]

    @property
    def current_wickets(self) -> int:
        return self.wickets[self.innings - 1]

    @property
    def target(self) -> Optional[int]:
        if self.innings != 2:
            return None
        return self.runs[0] + 1

    @property
    def balls_remaining(self) -> int:
        if self.phase == FINISHED:
            return 0
        return self.total_balls - self.current_ball + 1

    @property
    def result(self) -> Optional[dict]:
        """Winner of a finished match, or None while it is still being played.

        Equal totals are a tie; neither side is favoured.
        """
        if self.phase != FINISHED:
            return None
        first, second = self.runs
        if first == second:
            return {'outcome': 'tie', 'winner': None, 'winning_innings': None, 'margin': 0}
        winning_innings = 1 if first > second else 2
        return {
            'outcome': 'win',
            'winner': self.batsman_for(winning_innings),
            'winning_innings': winning_innings,
            'margin': abs(first - second),
        }

    def batsman_for(self, innings: int) -> Optional[str]:
        """Player who bats in the given innings (the creator bowls first)."""
        idx = 1 if innings == 1 else 0
        return self.players[idx] if idx < len(self.players) else None

    def to_dict(self):
        return {
            'room_id': self.room_id,
            'players': list(self.players),
            'phase': self.phase,
            'innings': self.innings,
            'current_ball': self.current_ball,
            'total_balls': self.total_balls,
            'original_ball_quota': self.original_ball_quota,
            'wicket_quota': self.wicket_quota,
            'bowler': self.bowler,
            'batsman': self.batsman,
            'pending_rotation': self.pending_rotation,
            'pending_shot_choice': self.pending_shot_choice,
            'runs': list(self.runs),
            'wickets': list(self.wickets),
            'target': self.target,
            'balls_remaining': self.balls_remaining,
            'delivery_history': [d.to_dict() for d in self.delivery_history],
            'result': self.result,
        }


class RoomPlayer:
    def __init__(self, player_id: str, room_id: str, is_room_creator: bool = False):
        self.id = player_id
        self.room_id = room_id
        self.connected = True
        self.is_room_creator = is_room_creator

    def to_dict(self):
        return {
            'id': self.id,
            'room_id': self.room_id,
            'connected': self.connected,
            'is_room_creator': self.is_room_creator,
        }


class Room:
    def __init__(self, room_id: str, creator_id: str):
        self.id = room_id
        self.creator = creator_id
        self.players: List[RoomPlayer] = [RoomPlayer(creator_id, room_id, is_room_creator=True)]
        self.max_players = MAX_PLAYERS
        self.created = utcnow()

    def find_player(self, player_id: str) -> Optional[RoomPlayer]:
        return next((p for p in self.players if p.id == player_id), None)

    @property
    def is_full(self) -> bool:
        return len(self.players) >= self.max_players

    def to_dict(self):
        return {
            'id': self.id,
            'creator': self.creator,
            'players': [p.to_dict() for p in self.players],
            'max_players': self.max_players,
            'created': self.created.isoformat(),
        }
