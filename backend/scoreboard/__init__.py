from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:5174",
    "http://127.0.0.1:5174",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Import and register blueprints here
    from scoreboard.main import main
    flask_app.register_blueprint(main)

    from scoreboard.api.matches import matches
    # Mount match routes under /api to match frontend API client
    flask_app.register_blueprint(matches, url_prefix='/api/matches')

    from scoreboard.api.logos import logos
    flask_app.register_blueprint(logos)

    # Change-feed handlers bind to the initialized socketio instance
    from scoreboard.socketio_events import register_socketio_handlers
    register_socketio_handlers(socketio, testing=flask_app.config.get('TESTING', False))

    # Flask-Login user loader
    from scoreboard.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return {'error': 'login required'}, 401

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from scoreboard.services.match import store
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            # Seed operators, one match each
            users = ['operator1', 'operator2']
            for u in users:
                user = User(username=u)
                user.set_password('password')
                db.session.add(user)
            db.session.commit()

            for user in User.query.all():
                store.create_record(user.id, name=f"{user.username} match")
            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    from scoreboard.feed_client import watch_overlay_command
    flask_app.cli.add_command(watch_overlay_command)

    return flask_app
