from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import random
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []
    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Session store + state machine shared by routes and socket handlers
    from stadtland.services.store import build_store
    from stadtland.services.game import SessionStateMachine
    store = build_store(flask_app.config.get('SESSION_STORE', 'sql'))
    seed = flask_app.config.get('RANDOM_SEED')
    flask_app.extensions['session_machine'] = SessionStateMachine(
        store,
        default_categories=flask_app.config.get('DEFAULT_CATEGORIES'),
        max_players=int(flask_app.config.get('MAX_PLAYERS', 6)),
        max_categories=int(flask_app.config.get('MAX_CATEGORIES', 10)),
        code_length=int(flask_app.config.get('SESSION_CODE_LENGTH', 6)),
        code_attempts=int(flask_app.config.get('CODE_GENERATION_ATTEMPTS', 50)),
        max_name_length=int(flask_app.config.get('MAX_NAME_LENGTH', 15)),
        rng=random.Random(seed) if seed is not None else None,
    )

    # Import and register blueprints here
    from stadtland.main import main
    flask_app.register_blueprint(main)

    from stadtland.api.sessions import sessions
    flask_app.register_blueprint(sessions, url_prefix='/api/sessions')

    # Register Socket.IO event handlers
    from stadtland.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates the session tables."""
        import stadtland.models  # noqa: F401
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            print('Database has been reset!')

    flask_app.cli.add_command(db_reset_command)

    flask_app.logger.info(
        f"[startup] store={flask_app.config.get('SESSION_STORE', 'sql')} max_players={flask_app.config.get('MAX_PLAYERS')}"
    )
    return flask_app
