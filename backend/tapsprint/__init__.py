from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)


def create_app(config_class=Config, scheduler=None):
    """Build the Flask app.

    ``scheduler`` overrides the sprint timer source; tests pass a
    virtual clock so countdowns and windows advance on demand.
    """
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from tapsprint.services.sprint import EXTENSION_KEY
    from tapsprint.services.sprint.orchestrator import SprintOrchestrator
    flask_app.extensions[EXTENSION_KEY] = SprintOrchestrator.from_app(flask_app, socketio, scheduler=scheduler)

    from tapsprint.main import main
    flask_app.register_blueprint(main, url_prefix='/api')

    from tapsprint.api.sprint import sprint
    flask_app.register_blueprint(sprint, url_prefix='/api/sprint')

    from tapsprint.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    # Identity comes from a bearer token on each request; there are no cookie sessions
    from tapsprint.identity import bearer_token, load_user_from_token

    @login_manager.request_loader
    def load_user_from_request(req):
        return load_user_from_token(bearer_token(req.headers.get('Authorization')))

    from tapsprint.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from tapsprint.models import User
        from tapsprint.identity import issue_token
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            users = [('admin', 'admin'), ('testuser1', 'player'), ('testuser2', 'player')]
            for username, role in users:
                db.session.add(User(username=username, role=role))
            db.session.commit()

            for user in User.query.order_by(User.id).all():
                print(f"{user.username} ({user.role}): {issue_token(user)}")
            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
