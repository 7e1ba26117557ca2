from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user
from scoreboard.services.match import clock, store
from scoreboard.services.match.errors import StoreUnavailable
from scoreboard.services.match.overlay import build_overlay
from scoreboard.services.match.state import MatchState, changed_fields
from scoreboard.services.match.transitions import UnknownCommand, apply_command
import time


matches = Blueprint('matches', __name__)

_last_controller_action: dict[str, float] = {}

# Filled in by the server, never taken from the request body
_SERVER_ARGS = ('state', 'now', 'card_id')


@matches.errorhandler(StoreUnavailable)
def handle_store_unavailable(exc):
    return jsonify({'error': str(exc)}), 503


def _not_found():
    return jsonify({'error': 'Match not found'}), 404


def _owned_record(match_id):
    """Return (record, error_response) for a match the operator owns."""
    record = store.get_record(match_id)
    if record is None:
        return None, _not_found()
    if record['owner_id'] != current_user.id:
        return None, (jsonify({'error': 'You do not own this match'}), 403)
    return record, None


def _debounced(command, match_id):
    try:
        debounce_ms = int(current_app.config.get('CONTROLLER_DEBOUNCE_MS', 0))
    except (TypeError, ValueError):
        debounce_ms = 0
    if debounce_ms <= 0:
        return False
    key = f"{command}:{match_id}:{current_user.id}"
    now = time.time() * 1000.0
    last = _last_controller_action.get(key, 0)
    if now - last < debounce_ms:
        return True
    _last_controller_action[key] = now
    return False


@matches.route('', methods=['POST'])
@login_required
def create_match():
    data = request.get_json(silent=True) or {}
    record = store.create_record(
        current_user.id,
        name=data.get('name'),
        description=data.get('description'),
        game_format=data.get('game_format'),
    )
    current_app.logger.info(f"[create] match={record['id']} owner={current_user.id}")
    return jsonify(record), 201


@matches.route('', methods=['GET'])
@login_required
def list_matches():
    return jsonify(store.list_records(current_user.id))


@matches.route('/<string:match_id>', methods=['GET'])
def get_match(match_id):
    record = store.get_record(match_id)
    if record is None:
        return _not_found()
    return jsonify(record)


@matches.route('/<string:match_id>', methods=['DELETE'])
@login_required
def delete_match(match_id):
    record, error = _owned_record(match_id)
    if error:
        return error
    store.delete_record(match_id)
    current_app.logger.info(f"[delete] match={match_id} owner={current_user.id}")
    return jsonify({'message': 'Match deleted'}), 200


@matches.route('/<string:match_id>/commands', methods=['POST'])
@login_required
def run_command(match_id):
    """Apply one operator command and persist the resulting state.

    The response echoes the stored record, but clients should render from
    the change feed. Commands whose guard fails leave the record untouched
    and come back with ``applied: false``.
    """
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        return jsonify({'error': 'request body must be a JSON object'}), 400
    command = data.pop('command', None)
    if not command or not isinstance(command, str):
        return jsonify({'error': 'command is required'}), 400
    args = {key: value for key, value in data.items() if key not in _SERVER_ARGS}
    if _debounced(command, match_id):
        return jsonify({'message': 'debounced'}), 202

    record, error = _owned_record(match_id)
    if error:
        return error

    current = MatchState.from_dict(record)
    try:
        next_state, applied = apply_command(current, command, clock.now(), **args)
    except UnknownCommand:
        return jsonify({'error': f'Unknown command: {command}'}), 400

    if applied:
        fields = changed_fields(current, next_state)
        record = store.update_record(match_id, fields) or record
    current_app.logger.info(f"[command] match={match_id} command={command} applied={applied}")
    return jsonify({'applied': applied, 'match': record})


@matches.route('/<string:match_id>/overlay', methods=['GET'])
def get_overlay(match_id):
    record = store.get_record(match_id)
    if record is None:
        return _not_found()
    payload = build_overlay(MatchState.from_dict(record), clock.now())
    payload['revision'] = record['revision']
    payload['redraw'] = {
        'clock_ms': int(current_app.config.get('CLOCK_REDRAW_MS', 200)),
        'cards_ms': int(current_app.config.get('CARD_REDRAW_MS', 1000)),
    }
    return jsonify(payload)
