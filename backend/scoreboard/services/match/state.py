"""Canonical match state: Match, Team, Card and their invariants.

The store persists these as plain JSON-able dicts (teams and format live in
JSON columns). ``MatchState.from_dict`` / ``to_dict`` are the only bridge
between a stored record and the state machine.
"""
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

QUARTERS = 'quarters'
HALVES = 'halves'
MAX_PERIODS = {QUARTERS: 4, HALVES: 2}

CARD_TYPES = ('green', 'yellow', 'red')
# Seconds a card stays active after issuance; red cards never expire
CARD_DURATIONS_SEC = {'green': 120, 'yellow': 300}

THEMES = ('dark', 'light')
SIDES = ('home', 'away')

BRANDING_FIELDS = ('name_abbr', 'name_full', 'logo_url', 'primary_color', 'secondary_color', 'font_color')
STAT_FIELDS = (
    'field_goals',
    'penalty_corners_awarded',
    'penalty_corners_converted',
    'penalty_strokes_awarded',
    'penalty_strokes_converted',
)


@dataclass(frozen=True)
class Card:
    type: str
    id: str
    expires_at: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Card':
        expires_at = data.get('expires_at')
        return cls(
            type=data['type'],
            id=str(data['id']),
            expires_at=float(expires_at) if expires_at is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {'type': self.type, 'id': self.id, 'expires_at': self.expires_at}


@dataclass(frozen=True)
class Team:
    name_abbr: str
    name_full: str
    logo_url: str = ''
    primary_color: str = '#1a56db'
    secondary_color: str = '#1e3a5f'
    font_color: str = '#ffffff'
    field_goals: int = 0
    penalty_corners_awarded: int = 0
    penalty_corners_converted: int = 0
    penalty_strokes_awarded: int = 0
    penalty_strokes_converted: int = 0
    cards: tuple = ()

    @property
    def score(self) -> int:
        # Never stored independently; always the sum of converted goals
        return self.field_goals + self.penalty_corners_converted + self.penalty_strokes_converted

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Team':
        kwargs = {name: data[name] for name in BRANDING_FIELDS if data.get(name) is not None}
        for name in STAT_FIELDS:
            kwargs[name] = max(0, int(data.get(name) or 0))
        kwargs['cards'] = tuple(Card.from_dict(c) for c in data.get('cards') or [])
        kwargs.setdefault('name_abbr', '')
        kwargs.setdefault('name_full', '')
        return cls(**kwargs)

    def to_dict(self, with_score: bool = False) -> Dict[str, Any]:
        """Stored shape; ``with_score`` adds the derived score for readers."""
        data: Dict[str, Any] = {name: getattr(self, name) for name in BRANDING_FIELDS}
        if with_score:
            data['score'] = self.score
        for name in STAT_FIELDS:
            data[name] = getattr(self, name)
        data['cards'] = [c.to_dict() for c in self.cards]
        return data

    def cleared(self) -> 'Team':
        """Same branding with every counter zeroed and no cards."""
        return replace(self, cards=(), **{name: 0 for name in STAT_FIELDS})


def default_team(side: str) -> Team:
    if side == 'home':
        return Team(name_abbr='HOME', name_full='Home Team', primary_color='#1a56db', secondary_color='#1e3a5f')
    return Team(name_abbr='AWAY', name_full='Away Team', primary_color='#dc2626', secondary_color='#7f1d1d')


@dataclass(frozen=True)
class GameFormat:
    type: str = QUARTERS
    duration_sec: int = 900

    @property
    def max_periods(self) -> int:
        return MAX_PERIODS[self.type]

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'GameFormat':
        data = data or {}
        fmt_type = data.get('type') if data.get('type') in MAX_PERIODS else QUARTERS
        return cls(type=fmt_type, duration_sec=int(data.get('duration_sec') or 900))

    def to_dict(self) -> Dict[str, Any]:
        return {'type': self.type, 'duration_sec': self.duration_sec}


@dataclass(frozen=True)
class MatchState:
    """One match's scoreboard state, as held by the store.

    Mutated only through ``transitions``; every transition returns a new
    instance. ``timer_started_at`` is set exactly when the timer runs.
    """
    id: str
    home_team: Team
    away_team: Team
    game_format: GameFormat = field(default_factory=GameFormat)
    owner_id: Optional[int] = None
    name: str = 'Untitled Match'
    description: Optional[str] = None
    current_period: int = 0
    timer_remaining_sec: int = 900
    is_timer_running: bool = False
    timer_started_at: Optional[float] = None
    is_match_ended: bool = False
    overlay_stats_visible: bool = False
    scoreboard_theme: str = 'dark'
    league_logo_url: Optional[str] = None
    channel_logo_url: Optional[str] = None

    @classmethod
    def new(cls, match_id: str, game_format: Optional[GameFormat] = None, **kwargs) -> 'MatchState':
        game_format = game_format or GameFormat()
        return cls(
            id=match_id,
            home_team=default_team('home'),
            away_team=default_team('away'),
            game_format=game_format,
            timer_remaining_sec=game_format.duration_sec,
            **kwargs,
        )

    def team(self, side: str) -> Team:
        return self.home_team if side == 'home' else self.away_team

    def with_team(self, side: str, team: Team) -> 'MatchState':
        if side == 'home':
            return replace(self, home_team=team)
        return replace(self, away_team=team)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MatchState':
        running = bool(data.get('is_timer_running'))
        started_at = data.get('timer_started_at')
        return cls(
            id=str(data['id']),
            owner_id=data.get('owner_id'),
            name=data.get('name') or 'Untitled Match',
            description=data.get('description'),
            home_team=Team.from_dict(data.get('home_team') or default_team('home').to_dict()),
            away_team=Team.from_dict(data.get('away_team') or default_team('away').to_dict()),
            game_format=GameFormat.from_dict(data.get('game_format')),
            current_period=int(data.get('current_period') or 0),
            timer_remaining_sec=max(0, int(data.get('timer_remaining_sec') or 0)),
            is_timer_running=running,
            timer_started_at=float(started_at) if running and started_at is not None else None,
            is_match_ended=bool(data.get('is_match_ended')),
            overlay_stats_visible=bool(data.get('overlay_stats_visible')),
            scoreboard_theme=data.get('scoreboard_theme') if data.get('scoreboard_theme') in THEMES else 'dark',
            league_logo_url=data.get('league_logo_url'),
            channel_logo_url=data.get('channel_logo_url'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'owner_id': self.owner_id,
            'name': self.name,
            'description': self.description,
            'home_team': self.home_team.to_dict(),
            'away_team': self.away_team.to_dict(),
            'game_format': self.game_format.to_dict(),
            'current_period': self.current_period,
            'timer_remaining_sec': self.timer_remaining_sec,
            'is_timer_running': self.is_timer_running,
            'timer_started_at': self.timer_started_at,
            'is_match_ended': self.is_match_ended,
            'overlay_stats_visible': self.overlay_stats_visible,
            'scoreboard_theme': self.scoreboard_theme,
            'league_logo_url': self.league_logo_url,
            'channel_logo_url': self.channel_logo_url,
        }


def changed_fields(before: MatchState, after: MatchState) -> Dict[str, Any]:
    """Top-level record fields that differ, ready for a partial update."""
    old, new = before.to_dict(), after.to_dict()
    return {key: value for key, value in new.items() if key not in ('id', 'owner_id') and old.get(key) != value}


def cards_of_type(team: Team, card_type: str) -> List[Card]:
    return [c for c in team.cards if c.type == card_type]
