"""Match state machine.

Each transition takes the current ``MatchState``, the wall-clock ``now`` and
the command arguments, and returns the next state. A command whose guard does
not hold returns the input state unchanged: the control surface already hides
invalid actions, so here they are ignored rather than raised.
"""
import inspect
import uuid
from dataclasses import replace
from typing import Any, Callable, Dict, Optional, Tuple

from .clock import displayed_remaining
from .state import (
    BRANDING_FIELDS,
    CARD_DURATIONS_SEC,
    CARD_TYPES,
    MAX_PERIODS,
    SIDES,
    THEMES,
    Card,
    GameFormat,
    MatchState,
)

# AddScore / SubtractScore kinds and the counter each one moves
SCORE_KINDS = {
    'field_goal': 'field_goals',
    'pc_goal': 'penalty_corners_converted',
    'ps_goal': 'penalty_strokes_converted',
}
PENALTY_KINDS = {
    'pc_awarded': 'penalty_corners_awarded',
    'ps_awarded': 'penalty_strokes_awarded',
}
DISPLAY_FLAGS = ('overlay_stats_visible', 'scoreboard_theme', 'league_logo_url', 'channel_logo_url')


class UnknownCommand(ValueError):
    pass


def _stopped(state: MatchState, **changes) -> MatchState:
    return replace(state, is_timer_running=False, timer_started_at=None, **changes)


def _choice(value: Any, choices) -> bool:
    return isinstance(value, str) and value in choices


def start_period(state: MatchState, now: float) -> MatchState:
    if state.is_match_ended:
        return state
    return replace(
        state,
        current_period=max(state.current_period, 1),
        is_timer_running=True,
        timer_started_at=now,
        is_match_ended=False,
    )


def stop_period(state: MatchState, now: float) -> MatchState:
    if not state.is_timer_running:
        return state
    remaining = displayed_remaining(state.timer_remaining_sec, True, state.timer_started_at, now)
    return _stopped(state, timer_remaining_sec=remaining)


def advance_period(state: MatchState, now: float) -> MatchState:
    # An ended match accepts no timer mutation until reset
    if state.is_match_ended:
        return state
    next_period = state.current_period + 1
    if next_period > state.game_format.max_periods:
        return end_match(state, now)
    return _stopped(state, current_period=next_period, timer_remaining_sec=state.game_format.duration_sec)


def end_match(state: MatchState, now: float) -> MatchState:
    # Freeze the clock where it stood so the final display stays put
    return _stopped(stop_period(state, now), is_match_ended=True)


def reset_scoreboard(state: MatchState, now: float) -> MatchState:
    """Zero every counter and card, keep identity, branding and format."""
    return _stopped(
        state,
        home_team=state.home_team.cleared(),
        away_team=state.away_team.cleared(),
        current_period=0,
        timer_remaining_sec=state.game_format.duration_sec,
        is_match_ended=False,
        overlay_stats_visible=False,
    )


def _bump(state: MatchState, side: str, counter: str, delta: int) -> MatchState:
    team = state.team(side)
    return state.with_team(side, replace(team, **{counter: getattr(team, counter) + delta}))


def add_score(state: MatchState, now: float, side: str, kind: str) -> MatchState:
    if state.is_match_ended or side not in SIDES or not _choice(kind, SCORE_KINDS):
        return state
    return _bump(state, side, SCORE_KINDS[kind], 1)


def subtract_score(state: MatchState, now: float, side: str, kind: str) -> MatchState:
    if state.is_match_ended or side not in SIDES or not _choice(kind, SCORE_KINDS):
        return state
    team = state.team(side)
    if getattr(team, SCORE_KINDS[kind]) <= 0 or team.score <= 0:
        return state
    return _bump(state, side, SCORE_KINDS[kind], -1)


def add_penalty_stat(state: MatchState, now: float, side: str, kind: str) -> MatchState:
    if state.is_match_ended or side not in SIDES or not _choice(kind, PENALTY_KINDS):
        return state
    return _bump(state, side, PENALTY_KINDS[kind], 1)


def subtract_penalty_stat(state: MatchState, now: float, side: str, kind: str) -> MatchState:
    if state.is_match_ended or side not in SIDES or not _choice(kind, PENALTY_KINDS):
        return state
    if getattr(state.team(side), PENALTY_KINDS[kind]) <= 0:
        return state
    return _bump(state, side, PENALTY_KINDS[kind], -1)


def add_card(state: MatchState, now: float, side: str, type: str, card_id: Optional[str] = None) -> MatchState:
    if state.is_match_ended or side not in SIDES or type not in CARD_TYPES:
        return state
    team = state.team(side)
    if card_id is not None and any(c.id == card_id for c in team.cards):
        return state
    duration = CARD_DURATIONS_SEC.get(type)
    card = Card(
        type=type,
        id=card_id or str(uuid.uuid4()),
        expires_at=now + duration if duration is not None else None,
    )
    return state.with_team(side, replace(team, cards=team.cards + (card,)))


def remove_card(state: MatchState, now: float, side: str, type: str) -> MatchState:
    if state.is_match_ended or side not in SIDES:
        return state
    team = state.team(side)
    cards = list(team.cards)
    for idx in range(len(cards) - 1, -1, -1):
        if cards[idx].type == type:
            del cards[idx]
            return state.with_team(side, replace(team, cards=tuple(cards)))
    return state


def update_format(state: MatchState, now: float, type: Optional[str] = None, duration_sec: Optional[int] = None) -> MatchState:
    new_type = type if _choice(type, MAX_PERIODS) else state.game_format.type
    try:
        new_duration = int(duration_sec) if duration_sec is not None else state.game_format.duration_sec
    except (TypeError, ValueError):
        return state
    if new_duration <= 0:
        return state
    game_format = GameFormat(type=new_type, duration_sec=new_duration)
    # A shorter format pulls the period back onto its last one
    period = min(state.current_period, game_format.max_periods)
    if new_duration != state.game_format.duration_sec:
        # New length resets the clock but never restarts it
        return _stopped(state, game_format=game_format, current_period=period, timer_remaining_sec=new_duration)
    return replace(state, game_format=game_format, current_period=period)


def update_team_branding(state: MatchState, now: float, side: str, **fields) -> MatchState:
    if side not in SIDES:
        return state
    changes = {k: ('' if v is None else str(v)) for k, v in fields.items() if k in BRANDING_FIELDS}
    if not changes:
        return state
    return state.with_team(side, replace(state.team(side), **changes))


def update_display_flags(state: MatchState, now: float, **fields) -> MatchState:
    changes: Dict[str, Any] = {}
    if 'overlay_stats_visible' in fields:
        changes['overlay_stats_visible'] = bool(fields['overlay_stats_visible'])
    if fields.get('scoreboard_theme') in THEMES:
        changes['scoreboard_theme'] = fields['scoreboard_theme']
    for name in ('league_logo_url', 'channel_logo_url'):
        if name in fields:
            changes[name] = fields[name] or None
    return replace(state, **changes) if changes else state


def update_description(state: MatchState, now: float, **fields) -> MatchState:
    changes: Dict[str, Any] = {}
    if 'description' in fields:
        changes['description'] = fields['description'] or None
    if fields.get('name'):
        changes['name'] = str(fields['name'])
    return replace(state, **changes) if changes else state


COMMANDS: Dict[str, Callable[..., MatchState]] = {
    'start_period': start_period,
    'stop_period': stop_period,
    'advance_period': advance_period,
    'end_match': end_match,
    'reset_scoreboard': reset_scoreboard,
    'add_score': add_score,
    'subtract_score': subtract_score,
    'add_penalty_stat': add_penalty_stat,
    'subtract_penalty_stat': subtract_penalty_stat,
    'add_card': add_card,
    'remove_card': remove_card,
    'update_format': update_format,
    'update_team_branding': update_team_branding,
    'update_display_flags': update_display_flags,
    'update_description': update_description,
}


def apply_command(state: MatchState, command: str, now: float, **args) -> Tuple[MatchState, bool]:
    """Run ``command`` against ``state``; returns (next_state, applied).

    Missing or malformed arguments count as an unmet guard.
    """
    handler = COMMANDS.get(command)
    if handler is None:
        raise UnknownCommand(command)
    try:
        inspect.signature(handler).bind(state, now, **args)
    except TypeError:
        return state, False
    next_state = handler(state, now, **args)
    return next_state, next_state != state
