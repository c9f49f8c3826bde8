"""Delivery engine: the authoritative state machine for every match.

Phases run ``waiting -> setting_field -> batting -> setting_field ...``
until ``finished``. Whose turn it is comes from ``phase`` and ``bowler``
alone; there is no separate turn flag.

Each operation validates the whole action before touching the match, so a
rejected action leaves the state exactly as it was.
"""
import logging
import math
from numbers import Real
from typing import Callable, Dict, Optional

from spincricket.exceptions import (
    AuthorizationError,
    CapacityError,
    DuplicatePlayerError,
    DuplicateRoomError,
    NotFoundError,
    PreconditionError,
    ValidationError,
)
from spincricket.models import (
    BATTING,
    FINISHED,
    MAX_PLAYERS,
    SETTING_FIELD,
    WAITING,
    DeliveryRecord,
    Match,
    utcnow,
)
from .scoring import classify_choice

logger = logging.getLogger(__name__)

DEFAULT_BALL_QUOTA = 6
DEFAULT_WICKET_QUOTA = 3


class DeliveryEngine:

    def __init__(self, ball_quota: int = DEFAULT_BALL_QUOTA,
                 wicket_quota: int = DEFAULT_WICKET_QUOTA,
                 clock: Callable = utcnow):
        self.ball_quota = ball_quota
        self.wicket_quota = wicket_quota
        self.clock = clock
        self._matches: Dict[str, Match] = {}

    def init_app(self, app) -> None:
        self.ball_quota = int(app.config.get('BALL_QUOTA', DEFAULT_BALL_QUOTA))
        self.wicket_quota = int(app.config.get('WICKET_QUOTA', DEFAULT_WICKET_QUOTA))

    def _get(self, room_id: str) -> Match:
        match = self._matches.get(room_id)
        if match is None:
            raise NotFoundError(room_id)
        return match

    def initialize(self, player_id: str, room_id: str) -> Match:
        """Create the match for a new room; the creator bowls first."""
        if room_id in self._matches:
            raise DuplicateRoomError(room_id)
        match = Match(room_id, player_id, self.ball_quota, self.wicket_quota)
        self._matches[room_id] = match
        logger.info(f"Match created for room {room_id} by {player_id}")
        return match

    def admit_second_player(self, player_id: str, room_id: str) -> Match:
        match = self._get(room_id)
        if player_id in match.players:
            raise DuplicatePlayerError(player_id)
        if len(match.players) >= MAX_PLAYERS:
            raise CapacityError(f"Room {room_id} already has {MAX_PLAYERS} players")
        match.players.append(player_id)
        return match

    def start(self, room_id: str) -> Match:
        match = self._get(room_id)
        if len(match.players) != MAX_PLAYERS:
            raise PreconditionError("room not ready")
        if match.phase != WAITING:
            raise PreconditionError(f"match already {match.phase}")
        match.phase = SETTING_FIELD
        logger.info(f"Match started in room {room_id}")
        return match

    def submit_field_rotation(self, player_id: str, room_id: str, rotation) -> Match:
        match = self._get(room_id)
        if not match.in_progress:
            raise PreconditionError(f"match is {match.phase}")
        if player_id != match.bowler:
            raise AuthorizationError("Only the bowler may set the field")
        if match.phase != SETTING_FIELD:
            raise AuthorizationError("Field already set, waiting for the batsman")
        if isinstance(rotation, bool) or not isinstance(rotation, Real) or not math.isfinite(rotation):
            raise ValidationError(f"rotation must be a number, got {rotation!r}")

        match.pending_rotation = rotation
        match.phase = BATTING
        return match

    def submit_shot_choice(self, player_id: str, room_id: str, choice) -> Match:
        match = self._get(room_id)
        if not match.in_progress:
            raise PreconditionError(f"match is {match.phase}")
        if player_id == match.bowler:
            raise AuthorizationError("Only the batsman may choose a shot")
        if player_id not in match.players:
            raise AuthorizationError(f"Player {player_id} is not in this match")
        if match.pending_rotation is None:
            raise ValidationError("field has not been set for this ball")
        if not isinstance(choice, str) or not choice.strip():
            raise ValidationError("shot choice is required")
        outcome = classify_choice(choice)

        self._resolve_delivery(match, choice, outcome)
        return match

    def _resolve_delivery(self, match: Match, choice: str, outcome) -> None:
        idx = match.innings - 1
        runs_before = match.runs[idx]
        match.pending_shot_choice = choice
        match.delivery_history.append(DeliveryRecord(
            ball_number=match.current_ball,
            innings=match.innings,
            rotation=match.pending_rotation,
            batsman_choice=choice,
            timestamp=self.clock(),
            runs_so_far=runs_before,
            runs_after=runs_before + outcome.runs,
        ))

        if outcome.kind == 'wicket':
            match.wickets[idx] += 1
        else:
            match.runs[idx] += outcome.runs
            if outcome.kind == 'extra':
                match.total_balls += 1

        self._clear_pending(match)

        # Chasing side passed the target
        if match.innings == 2 and match.runs[1] > match.runs[0]:
            self._finish(match)
            return

        quota_reached = outcome.counts_toward_quota and match.current_ball == match.total_balls
        all_out = match.wickets[idx] >= match.wicket_quota
        if quota_reached or all_out:
            if match.innings == 2:
                self._finish(match)
                return
            self._switch_innings(match)
        elif outcome.counts_toward_quota:
            match.current_ball += 1

        match.phase = SETTING_FIELD

    @staticmethod
    def _clear_pending(match: Match) -> None:
        match.pending_rotation = None
        match.pending_shot_choice = None

    @staticmethod
    def _switch_innings(match: Match) -> None:
        match.innings = 2
        match.current_ball = 1
        match.bowler = match.batsman
        match.total_balls = match.original_ball_quota
        logger.info(
            f"Innings switch in room {match.room_id}: target {match.target}, "
            f"{match.bowler} bowling"
        )

    @staticmethod
    def _finish(match: Match) -> None:
        match.phase = FINISHED
        logger.info(f"Match finished in room {match.room_id}: runs={match.runs} wickets={match.wickets}")

    def query(self, room_id: str) -> Optional[Match]:
        return self._matches.get(room_id)

    def teardown(self, room_id: str) -> None:
        if self._matches.pop(room_id, None) is not None:
            logger.info(f"Match state removed for room {room_id}")

    def reset(self) -> None:
        self._matches.clear()
