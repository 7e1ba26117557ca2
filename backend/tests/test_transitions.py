import random

import pytest

from scoreboard.services.match import transitions as t
from scoreboard.services.match.state import GameFormat, MatchState, changed_fields


def new_match(fmt_type='quarters', duration=600):
    return MatchState.new('m1', game_format=GameFormat(type=fmt_type, duration_sec=duration), owner_id=1)


def run(state, command, now=0.0, **args):
    next_state, _ = t.apply_command(state, command, now, **args)
    return next_state


def assert_score_invariant(state):
    for team in (state.home_team, state.away_team):
        assert team.score == team.field_goals + team.penalty_corners_converted + team.penalty_strokes_converted
        assert team.score >= 0


def test_new_match_shape():
    m = new_match()
    assert m.current_period == 0
    assert m.timer_remaining_sec == 600
    assert not m.is_timer_running and m.timer_started_at is None
    assert not m.is_match_ended
    assert m.home_team.name_abbr == 'HOME' and m.away_team.name_abbr == 'AWAY'
    assert m.home_team.score == 0 and m.home_team.cards == ()


def test_quarters_scenario():
    m = new_match()
    m = run(m, 'start_period', now=0.0)
    assert m.current_period == 1 and m.is_timer_running and m.timer_started_at == 0.0

    m = run(m, 'stop_period', now=65.0)
    assert m.timer_remaining_sec == 535
    assert not m.is_timer_running and m.timer_started_at is None

    m = run(m, 'add_score', side='home', kind='field_goal')
    assert m.home_team.score == 1 and m.home_team.field_goals == 1

    m = run(m, 'advance_period')
    assert m.current_period == 2 and m.timer_remaining_sec == 600

    m = run(m, 'advance_period')
    m = run(m, 'advance_period')
    assert m.current_period == 4 and not m.is_match_ended
    m = run(m, 'advance_period')
    assert m.is_match_ended
    assert m.current_period == 4


@pytest.mark.parametrize('fmt_type,max_periods', [('quarters', 4), ('halves', 2)])
def test_advance_period_never_exceeds_max(fmt_type, max_periods):
    m = new_match(fmt_type)
    for _ in range(max_periods):
        m = run(m, 'advance_period')
        assert m.current_period <= max_periods
    assert m.current_period == max_periods
    m = run(m, 'advance_period')
    assert m.is_match_ended
    assert not m.is_timer_running and m.timer_started_at is None
    for _ in range(3):
        m = run(m, 'advance_period')
    assert m.current_period == max_periods


def test_start_period_keeps_current_period():
    m = run(run(new_match(), 'advance_period'), 'advance_period')
    m = run(m, 'start_period', now=10.0)
    assert m.current_period == 2 and m.timer_started_at == 10.0


def test_stop_when_not_running_is_noop():
    m = new_match()
    next_state, applied = t.apply_command(m, 'stop_period', 5.0)
    assert next_state is m and not applied


def test_advance_while_running_stops_timer():
    m = run(new_match(), 'start_period', now=0.0)
    m = run(m, 'advance_period', now=30.0)
    assert m.current_period == 2
    assert not m.is_timer_running and m.timer_started_at is None
    assert m.timer_remaining_sec == 600


def test_end_match_freezes_clock_and_blocks_mutations():
    m = run(new_match(), 'start_period', now=0.0)
    m = run(m, 'end_match', now=100.0)
    assert m.is_match_ended and not m.is_timer_running and m.timer_started_at is None
    assert m.timer_remaining_sec == 500

    for command, args in [
        ('start_period', {}),
        ('add_score', {'side': 'home', 'kind': 'field_goal'}),
        ('add_penalty_stat', {'side': 'away', 'kind': 'pc_awarded'}),
        ('add_card', {'side': 'home', 'type': 'red'}),
    ]:
        next_state, applied = t.apply_command(m, command, 200.0, **args)
        assert not applied and next_state == m


def test_reset_scoreboard_keeps_branding():
    m = new_match()
    m = run(m, 'update_team_branding', side='home', name_abbr='HAW', name_full='Hawks',
            primary_color='#000000', logo_url='/logos/hawks.png')
    m = run(m, 'start_period', now=0.0)
    m = run(m, 'add_score', side='home', kind='pc_goal')
    m = run(m, 'add_penalty_stat', side='away', kind='ps_awarded')
    m = run(m, 'add_card', now=1.0, side='away', type='yellow')
    m = run(m, 'update_display_flags', overlay_stats_visible=True)
    m = run(m, 'end_match', now=20.0)

    m = run(m, 'reset_scoreboard', now=30.0)
    assert m.current_period == 0
    assert m.timer_remaining_sec == 600
    assert not m.is_timer_running and not m.is_match_ended
    assert not m.overlay_stats_visible
    for team in (m.home_team, m.away_team):
        assert team.score == 0 and team.cards == ()
        assert team.penalty_corners_awarded == team.penalty_strokes_awarded == 0
    assert m.home_team.name_abbr == 'HAW'
    assert m.home_team.name_full == 'Hawks'
    assert m.home_team.primary_color == '#000000'
    assert m.home_team.logo_url == '/logos/hawks.png'
    assert m.game_format == GameFormat(type='quarters', duration_sec=600)


def test_score_invariant_over_random_sequences():
    rng = random.Random(7)
    m = new_match()
    for _ in range(300):
        command = rng.choice(['add_score', 'subtract_score'])
        m = run(m, command, side=rng.choice(['home', 'away']), kind=rng.choice(['field_goal', 'pc_goal', 'ps_goal']))
        assert_score_invariant(m)


def test_subtract_score_on_zero_is_noop():
    m = new_match()
    next_state, applied = t.apply_command(m, 'subtract_score', 0.0, side='home', kind='field_goal')
    assert next_state == m and not applied


def test_subtract_score_needs_matching_counter():
    m = run(new_match(), 'add_score', side='home', kind='pc_goal')
    unchanged, applied = t.apply_command(m, 'subtract_score', 0.0, side='home', kind='field_goal')
    assert not applied and unchanged.home_team.score == 1
    m = run(m, 'subtract_score', side='home', kind='pc_goal')
    assert m.home_team.score == 0 and m.home_team.penalty_corners_converted == 0


def test_penalty_stats_are_independent_of_conversions():
    m = new_match()
    # Converted may exceed awarded; no clamp
    m = run(m, 'add_score', side='away', kind='ps_goal')
    assert m.away_team.penalty_strokes_converted == 1
    assert m.away_team.penalty_strokes_awarded == 0
    m = run(m, 'add_penalty_stat', side='away', kind='pc_awarded')
    m = run(m, 'add_penalty_stat', side='away', kind='pc_awarded')
    assert m.away_team.penalty_corners_awarded == 2
    assert m.away_team.score == 1
    m = run(m, 'subtract_penalty_stat', side='away', kind='pc_awarded')
    assert m.away_team.penalty_corners_awarded == 1
    _, applied = t.apply_command(m, 'subtract_penalty_stat', 0.0, side='away', kind='ps_awarded')
    assert not applied


def test_add_card_sets_fixed_expiry():
    m = new_match()
    m = run(m, 'add_card', now=0.0, side='away', type='yellow')
    m = run(m, 'add_card', now=10.0, side='away', type='green')
    m = run(m, 'add_card', now=20.0, side='away', type='red')
    yellow, green, red = m.away_team.cards
    assert yellow.expires_at == 300.0
    assert green.expires_at == 130.0
    assert red.expires_at is None
    assert len({yellow.id, green.id, red.id}) == 3


def test_add_then_remove_card_restores_card_counts():
    m = run(new_match(), 'add_card', now=0.0, side='home', type='green')
    before = [c.type for c in m.home_team.cards]
    m = run(m, 'add_card', now=5.0, side='home', type='yellow')
    m = run(m, 'remove_card', now=6.0, side='home', type='yellow')
    assert [c.type for c in m.home_team.cards] == before


def test_remove_card_takes_most_recent_of_type():
    m = new_match()
    m = run(m, 'add_card', now=0.0, side='home', type='green', card_id='first')
    m = run(m, 'add_card', now=1.0, side='home', type='yellow', card_id='middle')
    m = run(m, 'add_card', now=2.0, side='home', type='green', card_id='last')
    m = run(m, 'remove_card', side='home', type='green')
    assert [c.id for c in m.home_team.cards] == ['first', 'middle']


def test_remove_missing_card_type_is_noop():
    m = run(new_match(), 'add_card', side='home', type='green')
    _, applied = t.apply_command(m, 'remove_card', 0.0, side='home', type='red')
    assert not applied


def test_update_format_resets_clock_on_duration_change():
    m = run(new_match(), 'start_period', now=0.0)
    m = run(m, 'update_format', now=10.0, type='halves', duration_sec=1200)
    assert m.game_format == GameFormat(type='halves', duration_sec=1200)
    assert m.timer_remaining_sec == 1200
    assert not m.is_timer_running

    same = run(m, 'stop_period', now=11.0)
    same = run(same, 'update_format', type='quarters', duration_sec=1200)
    assert same.game_format.type == 'quarters'
    assert same.timer_remaining_sec == 1200


def test_update_format_rejects_non_positive_duration():
    m = new_match()
    _, applied = t.apply_command(m, 'update_format', 0.0, duration_sec=0)
    assert not applied


def test_display_flags_and_description():
    m = new_match()
    m = run(m, 'update_display_flags', scoreboard_theme='light', overlay_stats_visible=True,
            league_logo_url='/logos/league.png')
    assert m.scoreboard_theme == 'light' and m.overlay_stats_visible
    assert m.league_logo_url == '/logos/league.png'
    _, applied = t.apply_command(m, 'update_display_flags', 0.0, scoreboard_theme='neon')
    assert not applied

    m = run(m, 'update_description', description='Semi final', name='Cup')
    assert m.description == 'Semi final' and m.name == 'Cup'
    m = run(m, 'update_description', name='Cup Final')
    assert m.description == 'Semi final'


def test_branding_cannot_touch_stats():
    m = run(new_match(), 'update_team_branding', side='home', field_goals=9, name_abbr='X')
    assert m.home_team.name_abbr == 'X'
    assert m.home_team.field_goals == 0


def test_malformed_arguments_are_ignored():
    m = new_match()
    for command, args in [
        ('add_score', {'side': 'middle', 'kind': 'field_goal'}),
        ('add_score', {'side': 'home', 'kind': 'own_goal'}),
        ('add_score', {}),
        ('add_card', {'side': 'home', 'type': 'blue'}),
        ('start_period', {'unexpected': True}),
    ]:
        next_state, applied = t.apply_command(m, command, 0.0, **args)
        assert not applied and next_state == m


def test_unknown_command_raises():
    with pytest.raises(t.UnknownCommand):
        t.apply_command(new_match(), 'teleport', 0.0)


def test_transitions_do_not_mutate_input():
    m = new_match()
    snapshot = m.to_dict()
    run(m, 'add_card', side='home', type='green')
    run(m, 'start_period', now=1.0)
    assert m.to_dict() == snapshot


def test_changed_fields_is_partial():
    m = new_match()
    after = run(m, 'add_score', side='away', kind='field_goal')
    fields = changed_fields(m, after)
    assert set(fields) == {'away_team'}
    assert fields['away_team']['field_goals'] == 1
    # Score is derived, so it never lands in what the store writes
    assert 'score' not in fields['away_team']


def test_round_trip_ignores_stored_score():
    data = new_match().to_dict()
    data['home_team']['score'] = 42
    data['home_team']['field_goals'] = 2
    restored = MatchState.from_dict(data)
    assert restored.home_team.score == 2


def test_switching_to_halves_pulls_period_back():
    m = new_match()
    for _ in range(3):
        m = run(m, 'advance_period')
    assert m.current_period == 3
    m, applied = t.apply_command(m, 'update_format', 0.0, type='halves')
    assert applied
    assert m.current_period == 2 == m.game_format.max_periods
    assert not m.is_match_ended


def test_add_card_rejects_duplicate_id():
    m = run(new_match(), 'add_card', side='home', type='green', card_id='x')
    again, applied = t.apply_command(m, 'add_card', 5.0, side='home', type='yellow', card_id='x')
    assert not applied and again == m
    assert [c.id for c in m.home_team.cards] == ['x']


def test_non_string_arguments_are_ignored():
    m = new_match()
    for command, args in [
        ('add_score', {'side': 'home', 'kind': ['field_goal']}),
        ('add_penalty_stat', {'side': 'home', 'kind': {'pc_awarded': 1}}),
        ('update_format', {'type': ['halves']}),
    ]:
        next_state, applied = t.apply_command(m, command, 0.0, **args)
        assert not applied and next_state == m


def test_errors_inside_a_command_propagate(monkeypatch):
    def broken(state, now):
        raise TypeError('bug in handler')

    monkeypatch.setitem(t.COMMANDS, 'start_period', broken)
    with pytest.raises(TypeError, match='bug in handler'):
        t.apply_command(new_match(), 'start_period', 0.0)
