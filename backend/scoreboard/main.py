from flask import Blueprint, request, jsonify, current_app
from flask_login import login_user, logout_user, login_required, current_user
from sqlalchemy.exc import SQLAlchemyError
from .models import db, User
from .services.match.store import owner_room, FEED_NAMESPACE
from . import socketio, theme

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the scoreboard server!'})

@main.route('/login', methods=['POST', 'OPTIONS'])
def login():
    if request.method == 'OPTIONS':
        return jsonify({'status': 'ok'}), 200
    data = request.get_json() or {}
    user = User.query.filter_by(username=data.get('username')).first()
    if user and user.check_password(data.get('password') or ''):
        login_user(user, remember=True)
        theme.init_app_theme(user)
        return jsonify({"success": True, "user": user.to_dict()})
    return jsonify({"success": False, "message": "Invalid credentials"}), 401

@main.route('/register', methods=['POST', 'OPTIONS'])
def register():
    if request.method == 'OPTIONS':
        return jsonify({'status': 'ok'}), 200
    data = request.get_json() or {}
    if not data.get('username') or not data.get('password'):
        return jsonify({"success": False, "message": "Missing username or password"}), 400
    if User.query.filter_by(username=data['username']).first():
        return jsonify({"success": False, "message": "Username already exists"}), 400

    new_user = User(username=data['username'])
    new_user.set_password(data['password'])
    db.session.add(new_user)
    db.session.commit()
    login_user(new_user)
    theme.init_app_theme(new_user)
    return jsonify({"success": True, "user": new_user.to_dict()}), 201

@main.route('/check_login', methods=['GET', 'OPTIONS'])
def check_login():
    if request.method == 'OPTIONS':
        return jsonify({'status': 'ok'}), 200

    @login_required
    def protected_check():
        theme.init_app_theme(current_user)
        return jsonify({"success": True, "user": current_user.to_dict()})

    return protected_check()

@main.route('/logout', methods=['POST', 'OPTIONS'])
@login_required
def logout():
    theme.forget_app_theme(current_user.id)
    logout_user()
    return jsonify({"success": True})

@main.route('/profile', methods=['GET'])
@login_required
def get_profile():
    profile = current_user.to_dict()
    profile['app_theme'] = theme.current_app_theme(current_user)
    return jsonify(profile)

@main.route('/profile/theme', methods=['POST'])
@login_required
def update_theme():
    """Set the operator theme, or flip it when no theme is given."""
    data = request.get_json(silent=True) or {}
    requested = data.get('app_theme') or theme.toggled(current_user.app_theme)
    if requested not in theme.THEMES:
        return jsonify({'error': f'Unknown theme: {requested}'}), 400
    previous = current_user.app_theme
    theme.set_app_theme(current_user, requested)
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        theme.set_app_theme(current_user, previous)
        current_app.logger.error(f"[store-error] theme user={current_user.id}: {exc}")
        return jsonify({'error': 'Could not save theme'}), 503
    socketio.emit('profile_change', current_user.to_dict(), to=owner_room(current_user.id), namespace=FEED_NAMESPACE)
    return jsonify(current_user.to_dict())
