from scoreboard import db, bcrypt
from flask_login import UserMixin
from scoreboard.services.match.state import MatchState, Team
import time
import uuid

class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    # Operator-facing UI theme; overlays never read this
    app_theme = db.Column(db.String(8), default='dark', nullable=False)
    matches = db.relationship('Match', back_populates='owner', lazy='dynamic')

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'app_theme': self.app_theme,
        }

def generate_match_id():
    return uuid.uuid4().hex

class Match(db.Model):
    __tablename__ = 'match'
    id = db.Column(db.String(32), primary_key=True, default=generate_match_id)
    owner_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    owner = db.relationship('User', back_populates='matches')
    name = db.Column(db.String(128), default='Untitled Match', nullable=False)
    description = db.Column(db.Text, nullable=True)
    home_team = db.Column(db.JSON, nullable=False)
    away_team = db.Column(db.JSON, nullable=False)
    game_format = db.Column(db.JSON, nullable=False)  # {"type": quarters|halves, "duration_sec": int}
    current_period = db.Column(db.Integer, default=0, nullable=False)
    timer_remaining_sec = db.Column(db.Integer, nullable=False)
    is_timer_running = db.Column(db.Boolean, default=False, nullable=False)
    timer_started_at = db.Column(db.Float, nullable=True)  # epoch seconds, set only while running
    is_match_ended = db.Column(db.Boolean, default=False, nullable=False)
    overlay_stats_visible = db.Column(db.Boolean, default=False, nullable=False)
    scoreboard_theme = db.Column(db.String(8), default='dark', nullable=False)
    league_logo_url = db.Column(db.String(512), nullable=True)
    channel_logo_url = db.Column(db.String(512), nullable=True)
    # Bumped on every commit; lets replicas drop stale deliveries. Not a write lock.
    revision = db.Column(db.Integer, default=1, nullable=False)
    created_at = db.Column(db.Float, default=time.time, nullable=False, index=True)
    updated_at = db.Column(db.Float, default=time.time, onupdate=time.time, nullable=False)

    STATE_FIELDS = (
        'name', 'description', 'home_team', 'away_team', 'game_format',
        'current_period', 'timer_remaining_sec', 'is_timer_running', 'timer_started_at',
        'is_match_ended', 'overlay_stats_visible', 'scoreboard_theme',
        'league_logo_url', 'channel_logo_url',
    )

    @classmethod
    def from_state(cls, state: MatchState) -> 'Match':
        data = state.to_dict()
        return cls(id=state.id, owner_id=state.owner_id, **{k: data[k] for k in cls.STATE_FIELDS})

    def to_state(self) -> MatchState:
        return MatchState.from_dict(self.to_dict())

    def to_dict(self):
        data = {'id': self.id, 'owner_id': self.owner_id}
        for name in self.STATE_FIELDS:
            data[name] = getattr(self, name)
        # Score is derived on every read, never stored
        for side in ('home_team', 'away_team'):
            data[side] = Team.from_dict(data[side]).to_dict(with_score=True)
        data['revision'] = self.revision
        data['created_at'] = self.created_at
        data['updated_at'] = self.updated_at
        return data
