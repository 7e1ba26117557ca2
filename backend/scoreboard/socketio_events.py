from flask_socketio import join_room, leave_room, emit
from flask import current_app, request
from flask_login import current_user
from scoreboard.services.match import store
from scoreboard.services.match.errors import StoreUnavailable
from typing import Dict, Any


# Per-socket subscription context: which match room / owner room it joined
_sid_to_ctx: Dict[str, Dict[str, Any]] = {}


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def handle_connect(auth=None):
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(reason=None):
    # Rooms are dropped by Socket.IO itself; only our bookkeeping remains
    ctx = _sid_to_ctx.pop(_get_sid(), None)
    if ctx and ctx.get('match_id'):
        current_app.logger.info(f"[feed] disconnect match={ctx['match_id']}")


def _leave_current_match(ctx: Dict[str, Any]) -> None:
    previous = ctx.pop('match_id', None)
    if previous:
        leave_room(store.match_room(previous))


def handle_watch_match(data):
    """Subscribe this socket to one match: join its room, then snapshot.

    Joining before reading means no committed update can fall between the
    snapshot and the first change; a change that races ahead of the
    snapshot is dropped client-side by revision.
    """
    match_id = (data or {}).get('match_id')
    if not match_id:
        emit('error', {'message': 'match_id is required'})
        return
    ctx = _sid_to_ctx.setdefault(_get_sid(), {})
    if ctx.get('match_id') != match_id:
        _leave_current_match(ctx)
        join_room(store.match_room(match_id))
        ctx['match_id'] = match_id
    try:
        record = store.get_record(match_id)
    except StoreUnavailable as exc:
        emit('error', {'message': str(exc), 'match_id': match_id})
        return
    emit('match_snapshot', {'match_id': match_id, 'record': record})


def handle_unwatch_match(data):
    ctx = _sid_to_ctx.get(_get_sid(), {})
    match_id = (data or {}).get('match_id') or ctx.get('match_id')
    if not match_id:
        emit('error', {'message': 'match_id is required'})
        return
    if ctx.get('match_id') == match_id:
        ctx.pop('match_id', None)
    leave_room(store.match_room(match_id))
    emit('unwatched', {'match_id': match_id})


def handle_subscribe_matches(data=None):
    """Subscribe a logged-in operator to inserts/updates/deletes of their matches."""
    if not current_user.is_authenticated:
        emit('error', {'message': 'login required'})
        return
    join_room(store.owner_room(current_user.id))
    _sid_to_ctx.setdefault(_get_sid(), {})['owner_id'] = current_user.id
    try:
        records = store.list_records(current_user.id)
    except StoreUnavailable as exc:
        emit('error', {'message': str(exc)})
        return
    emit('matches_snapshot', {'owner_id': current_user.id, 'records': records})


def handle_unsubscribe_matches(data=None):
    ctx = _sid_to_ctx.get(_get_sid(), {})
    owner_id = ctx.pop('owner_id', None)
    if owner_id is not None:
        leave_room(store.owner_room(owner_id))
    emit('unsubscribed', {'owner_id': owner_id})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(socketio, testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    handlers = {
        'connect': handle_connect,
        'disconnect': handle_disconnect,
        'watch_match': handle_watch_match,
        'unwatch_match': handle_unwatch_match,
        'subscribe_matches': handle_subscribe_matches,
        'unsubscribe_matches': handle_unsubscribe_matches,
        'ping': handle_ping,
    }
    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        for event, handler in handlers.items():
            socketio.on_event(event, handler, namespace=namespace)
