from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config
from cubetag.errors import FatalConfigError

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:2220",
    "http://127.0.0.1:2220",
]
WS_NAMESPACE = '/ws'
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    if not flask_app.config.get('SECRET_KEY'):
        raise FatalConfigError('SECRET_KEY must be set before starting the server')

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Base64 backgrounds travel over the socket; leave headroom for the encoding
    max_bytes = int(flask_app.config.get('MAX_BACKGROUND_BYTES', 5 * 1024 * 1024))
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins, max_http_buffer_size=max_bytes * 2)

    from cubetag.main import main
    flask_app.register_blueprint(main)

    # One authority per app; handlers reach it through app.extensions
    from cubetag.services.accounts import AccountStore
    from cubetag.services.moderation import ModerationClient
    from cubetag.services.game.authority import GameAuthority
    from cubetag.services.game.scheduler import SweepScheduler

    def broadcast(event, data, to=None, skip_sid=None):
        socketio.emit(event, data, to=to, skip_sid=skip_sid, namespace=WS_NAMESPACE)

    authority = GameAuthority.from_config(
        flask_app.config,
        broadcast,
        AccountStore(),
        ModerationClient.from_config(flask_app.config),
        logger=flask_app.logger,
    )
    flask_app.extensions['cubetag'] = authority

    from cubetag.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    from cubetag.models import Account

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(Account, int(user_id))

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates every table."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            print('Database has been reset!')

    flask_app.cli.add_command(db_reset_command)

    scheduler = SweepScheduler(flask_app, authority)
    flask_app.extensions['cubetag_scheduler'] = scheduler
    scheduler.start()

    return flask_app
