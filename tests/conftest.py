import pytest
from app import create_app
from models import db, User, Tournament
from datetime import date, time, timedelta


@pytest.fixture
def flask_app(tmp_path):
    """Create test application backed by a throwaway SQLite file"""
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret-key',
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'test.db'}",
        'ADMIN_EMAIL': 'admin@test.com',
        'ADMIN_PASSWORD': 'admin123',
    })

    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(flask_app):
    """Test client"""
    return flask_app.test_client()


def make_user(email, first_name, last_name, role='player', elo=1200, matches_played=0, password='secret123'):
    user = User(
        email=email,
        first_name=first_name,
        last_name=last_name,
        role=role,
        elo=elo,
        matches_played=matches_played,
        age=30,
    )
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return user


def login(client, user):
    """Inject a session the way the login route builds it"""
    with client.session_transaction() as sess:
        sess['user_id'] = user.id
        sess['role'] = user.role
    return client


def fresh(model, object_id):
    """Re-read a row after a request has committed through its own session"""
    db.session.expire_all()
    return db.session.get(model, object_id)


@pytest.fixture
def owner_user(flask_app):
    """Create a club owner"""
    return make_user('owner@test.com', 'Olive', 'Owner', role='owner')


@pytest.fixture
def other_owner(flask_app):
    return make_user('owner2@test.com', 'Oscar', 'Other', role='owner')


@pytest.fixture
def player_user(flask_app):
    """Create a player with the default rating"""
    return make_user('player@test.com', 'Pat', 'Player')


@pytest.fixture
def players(flask_app):
    """Four players with distinct ratings, strongest first"""
    return [
        make_user('alice@test.com', 'Alice', 'Ace', elo=1500),
        make_user('bob@test.com', 'Bob', 'Baseline', elo=1400),
        make_user('cara@test.com', 'Cara', 'Court', elo=1300),
        make_user('dan@test.com', 'Dan', 'Drop', elo=1200),
    ]


@pytest.fixture
def tournament(flask_app, owner_user):
    """An upcoming tournament a week from now"""
    tournament = Tournament(
        name='Club Night',
        date=date.today() + timedelta(days=7),
        time=time(18, 0),
        format='Best of 3 to 11',
        group_size=4,
        max_participants=16,
        description='Weekly ladder night',
        created_by=owner_user.id,
    )
    db.session.add(tournament)
    db.session.commit()
    return tournament


@pytest.fixture
def grouped_tournament(tournament, players, owner_user):
    """Tournament with four confirmed players drawn into a single group"""
    for player in players:
        tournament.join(player)
    tournament.generate_groups(actor=owner_user)
    db.session.commit()
    return tournament


@pytest.fixture
def authenticated_owner(client, owner_user):
    """Client logged in as the club owner"""
    return login(client, owner_user)


@pytest.fixture
def authenticated_player(client, player_user):
    """Client logged in as a player"""
    return login(client, player_user)
