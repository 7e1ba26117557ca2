from typing import Any, Dict

from .cards import active_cards, card_remaining
from .clock import displayed_remaining, format_clock
from .state import QUARTERS, MatchState, Team


def period_label(state: MatchState) -> str:
    if state.is_match_ended:
        return 'FINAL'
    if state.current_period == 0:
        return 'PRE'
    prefix = 'Q' if state.game_format.type == QUARTERS else 'H'
    return f"{prefix}{state.current_period}"


def team_view(team: Team, now: float) -> Dict[str, Any]:
    data = team.to_dict(with_score=True)
    data['active_cards'] = [
        dict(card.to_dict(), remaining_sec=card_remaining(card, now))
        for card in active_cards(team.cards, now)
    ]
    data['card_count'] = len(team.cards)
    return data


def build_overlay(state: MatchState, now: float) -> Dict[str, Any]:
    """Read model for a passive overlay, derived only from the match record.

    ``scoreboard_theme`` comes from the match itself; the operator's own
    application theme is deliberately not an input here.
    """
    remaining = displayed_remaining(state.timer_remaining_sec, state.is_timer_running, state.timer_started_at, now)
    return {
        'match_id': state.id,
        'name': state.name,
        'home_team': team_view(state.home_team, now),
        'away_team': team_view(state.away_team, now),
        'period_label': period_label(state),
        'clock': format_clock(remaining),
        'clock_remaining_sec': remaining,
        'is_timer_running': state.is_timer_running,
        'is_match_ended': state.is_match_ended,
        'overlay_stats_visible': state.overlay_stats_visible,
        'scoreboard_theme': state.scoreboard_theme,
        'league_logo_url': state.league_logo_url,
        'channel_logo_url': state.channel_logo_url,
    }
