import logging
import os

from flask import Flask, render_template, redirect, url_for, g

from models import db, Tournament, User, DEFAULT_TIMEZONE, init_default_data
from blueprints.auth import auth_bp, load_current_user
from blueprints.matches import matches_bp
from blueprints.owner import owner_bp
from blueprints.player import player_bp
from blueprints.public import public_bp

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

logger = logging.getLogger(__name__)


def _database_url() -> tuple[str, str | None]:
    """Remote PostgreSQL when DATABASE_URL is set, local SQLite otherwise."""
    database_url = os.environ.get('DATABASE_URL')
    if database_url:
        # Heroku style URLs (postgres://) are rejected by SQLAlchemy
        if database_url.startswith('postgres://'):
            database_url = database_url.replace('postgres://', 'postgresql://', 1)
        return database_url, None

    default_sqlite_dir = os.path.join(BASE_DIR, 'instance')
    os.makedirs(default_sqlite_dir, exist_ok=True)
    sqlite_path = os.environ.get('SQLITE_PATH', os.path.join(default_sqlite_dir, 'clubcourt.db'))
    return f'sqlite:///{sqlite_path}', sqlite_path


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__)

    logging.basicConfig(
        level=os.environ.get('LOG_LEVEL', 'INFO').upper(),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    # Configuration
    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'clubcourt')
    sqlite_path = None
    if not (test_config and 'SQLALCHEMY_DATABASE_URI' in test_config):
        app.config['SQLALCHEMY_DATABASE_URI'], sqlite_path = _database_url()
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['SQLALCHEMY_ENGINE_OPTIONS'] = {
        'pool_pre_ping': True,
        'pool_recycle': 300,
    }
    app.config['REGISTRATION_PASSWORDS'] = {
        'player': os.environ.get('PLAYER_REGISTRATION_PASSWORD', 'SquashPlayer2024'),
        'owner': os.environ.get('OWNER_REGISTRATION_PASSWORD', 'SquashOwner2024'),
    }
    app.config['ADMIN_EMAIL'] = os.environ.get('ADMIN_EMAIL', 'admin@clubcourt.local')
    app.config['ADMIN_PASSWORD'] = os.environ.get('ADMIN_PASSWORD', 'admin123')
    app.config['LEADERBOARD_SIZE'] = int(os.environ.get('LEADERBOARD_SIZE', 10))
    app.config['CLUB_TIMEZONE'] = os.environ.get('CLUB_TIMEZONE', DEFAULT_TIMEZONE)

    if test_config:
        app.config.update(test_config)

    db.init_app(app)

    with app.app_context():
        db.create_all()
        init_default_data(app.config['ADMIN_EMAIL'], app.config['ADMIN_PASSWORD'])
        logger.info('Database initialized (%s)', sqlite_path or app.config['SQLALCHEMY_DATABASE_URI'])

    # Register blueprints
    app.register_blueprint(auth_bp)
    app.register_blueprint(owner_bp)
    app.register_blueprint(player_bp)
    app.register_blueprint(matches_bp)
    app.register_blueprint(public_bp)

    @app.before_request
    def before_request():
        """Load current user before every request to ANY route"""
        load_current_user()

    @app.route('/')
    def index():
        """Landing page with upcoming tournaments and the top of the ladder"""
        if getattr(g, 'current_user', None):
            return redirect(url_for('dashboard'))

        upcoming = (
            Tournament.query.filter(Tournament.completed_at.is_(None))
            .order_by(Tournament.date.asc(), Tournament.time.asc())
            .limit(5)
            .all()
        )
        top_players = User.leaderboard(limit=5)
        return render_template('index.html', upcoming=upcoming, top_players=top_players)

    @app.route('/dashboard')
    def dashboard():
        """Send members to the dashboard for their role"""
        user = getattr(g, 'current_user', None)
        if not user:
            return redirect(url_for('auth.login'))
        if user.is_owner:
            return redirect(url_for('owner.dashboard'))
        return redirect(url_for('player.dashboard'))

    return app


if __name__ == "__main__":
    create_app().run(debug=True, port=5000)
