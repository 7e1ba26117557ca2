"""Document store for match records, with change notifications.

Backed by Flask-SQLAlchemy. Each committed write is published on the
Socket.IO change feed as ``match_change`` to the match room (overlays and
control surfaces) and to the owner's room (match lists). Writes are
last-write-wins: ``revision`` only orders deliveries, it is never compared.
"""
from typing import Any, Dict, List, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from scoreboard import db, socketio
from scoreboard.models import Match, generate_match_id
from .errors import StoreUnavailable
from .state import GameFormat, MatchState

FEED_EVENT = 'match_change'
FEED_NAMESPACE = '/ws'


def match_room(match_id: str) -> str:
    return f"match:{match_id}"


def owner_room(owner_id: int) -> str:
    return f"owner:{owner_id}"


def publish(event_type: str, record: Dict[str, Any]) -> None:
    payload = {'event_type': event_type, 'record': record}
    socketio.emit(FEED_EVENT, payload, to=match_room(record['id']), namespace=FEED_NAMESPACE)
    if record.get('owner_id') is not None:
        socketio.emit(FEED_EVENT, payload, to=owner_room(record['owner_id']), namespace=FEED_NAMESPACE)
    current_app.logger.info(
        f"[feed] {event_type} match={record['id']} revision={record.get('revision')}"
    )


def _commit(action: str, match_id: Optional[str]) -> None:
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error(f"[store-error] {action} match={match_id}: {exc}")
        raise StoreUnavailable(f"Could not {action} match") from exc


def create_record(owner_id: int, **fields) -> Dict[str, Any]:
    cfg = current_app.config
    game_format = GameFormat.from_dict({
        'type': cfg.get('DEFAULT_FORMAT_TYPE', 'quarters'),
        'duration_sec': cfg.get('DEFAULT_PERIOD_DURATION_SEC', 900),
    })
    if fields.get('game_format'):
        game_format = GameFormat.from_dict(fields.pop('game_format'))
    state = MatchState.new(generate_match_id(), game_format=game_format, owner_id=owner_id)
    match = Match.from_state(state)
    if fields.get('name'):
        match.name = str(fields['name'])
    if fields.get('description'):
        match.description = str(fields['description'])
    db.session.add(match)
    _commit('create', match.id)
    record = match.to_dict()
    publish('insert', record)
    return record


def _load(match_id: str) -> Optional[Match]:
    try:
        return db.session.get(Match, match_id)
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StoreUnavailable('Could not read match') from exc


def get_record(match_id: str) -> Optional[Dict[str, Any]]:
    match = _load(match_id)
    return match.to_dict() if match else None


def list_records(owner_id: int) -> List[Dict[str, Any]]:
    try:
        matches = Match.query.filter_by(owner_id=owner_id).order_by(Match.created_at.desc()).all()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StoreUnavailable('Could not list matches') from exc
    return [m.to_dict() for m in matches]


def update_record(match_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Overwrite ``fields`` on the stored match; None when it does not exist."""
    match = _load(match_id)
    if not match:
        return None
    for name, value in fields.items():
        if name in Match.STATE_FIELDS:
            setattr(match, name, value)
    match.revision = (match.revision or 0) + 1
    db.session.add(match)
    _commit('update', match_id)
    record = match.to_dict()
    publish('update', record)
    return record


def delete_record(match_id: str) -> bool:
    match = _load(match_id)
    if not match:
        return False
    record = match.to_dict()
    db.session.delete(match)
    _commit('delete', match_id)
    record['revision'] = record['revision'] + 1
    publish('delete', record)
    return True
