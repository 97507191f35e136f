from datetime import datetime, time, timedelta
import logging
import os
import re

import pytz
from flask import current_app, has_app_context
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import or_
from sqlalchemy.orm import validates
from werkzeug.security import generate_password_hash, check_password_hash

from grouping import generate_groups, group_label, group_rating_spread, round_robin_pairs
from match_format import (
    DEFAULT_FORMAT,
    FORMAT_OPTIONS,
    INDIVIDUAL_FORMAT_OPTIONS,
    parse_match_format,
    score_display,
    validate_scores,
    determine_winner,
)
from rating import DEFAULT_ELO, calculate_elo_change, team_average_elo

db = SQLAlchemy()
logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = 'Europe/London'

ROLES = ('owner', 'player')
MIN_AGE = 16
MAX_AGE = 100
MIN_PASSWORD_LENGTH = 6
MIN_GROUP_SIZE = 2
MAX_GROUP_SIZE = 8
MATCH_TYPES = {'1v1': 1, '2v2': 2}
MATCH_MODES = ('ranked', 'casual')


def club_timezone():
    """Zone from the app config, or from the environment outside an app context."""
    if has_app_context():
        name = current_app.config.get('CLUB_TIMEZONE', DEFAULT_TIMEZONE)
    else:
        name = os.environ.get('CLUB_TIMEZONE', DEFAULT_TIMEZONE)
    return pytz.timezone(name)


def current_time():
    """Club-local wall clock time, stored without tzinfo."""
    return datetime.now(club_timezone()).replace(tzinfo=None)


def calculate_tournament_status(tournament, now: datetime | None = None) -> str:
    """Derive upcoming/active/completed from the scheduled start.

    A tournament completed by its owner keeps that status regardless of the
    clock. Otherwise it is active from the start time until local midnight.
    """
    if tournament.status == 'completed' and tournament.completed_at:
        return 'completed'

    if not tournament.date or not tournament.time:
        return tournament.status

    now = now or current_time()
    start = datetime.combine(tournament.date, tournament.time)
    next_day = datetime.combine(tournament.date + timedelta(days=1), time(0, 0))

    if now < start:
        return 'upcoming'
    if now < next_day:
        return 'active'
    return 'completed'


class User(db.Model):
    """Club members - owners run tournaments, players compete."""

    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    first_name = db.Column(db.String(60), nullable=False)
    last_name = db.Column(db.String(60), nullable=False)
    age = db.Column(db.Integer)
    role = db.Column(db.String(20), nullable=False, default='player')  # 'owner' or 'player'
    elo = db.Column(db.Integer, nullable=False, default=DEFAULT_ELO)
    matches_played = db.Column(db.Integer, nullable=False, default=0)
    matches_won = db.Column(db.Integer, nullable=False, default=0)
    tournaments_played = db.Column(db.Integer, nullable=False, default=0)
    last_elo_change = db.Column(db.Integer)
    is_disabled = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=current_time)
    updated_at = db.Column(db.DateTime, default=current_time, onupdate=current_time)

    tournaments_created = db.relationship(
        'Tournament', backref='creator', lazy=True, foreign_keys='Tournament.created_by'
    )
    participations = db.relationship('TournamentParticipant', back_populates='user', lazy=True)

    def __repr__(self):  # pragma: no cover - debug helper
        return f"<User {self.id} {self.email} role={self.role}>"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_owner(self) -> bool:
        return self.role == 'owner'

    @property
    def win_rate(self) -> int:
        if not self.matches_played:
            return 0
        return round(self.matches_won / self.matches_played * 100)

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    def record_match(self, won: bool, elo_change: int | None = None) -> None:
        """Apply one finished match to the running totals."""
        self.matches_played = (self.matches_played or 0) + 1
        if won:
            self.matches_won = (self.matches_won or 0) + 1
        if elo_change is not None:
            self.elo = (self.elo or DEFAULT_ELO) + elo_change
            self.last_elo_change = elo_change

    @staticmethod
    def validate_profile(first_name: str, last_name: str, age) -> list[str]:
        errors: list[str] = []
        if not first_name or not first_name.strip():
            errors.append("First name is required")
        if not last_name or not last_name.strip():
            errors.append("Last name is required")

        if age not in (None, ''):
            try:
                age_value = int(age)
            except (TypeError, ValueError):
                errors.append("Age must be a number")
            else:
                if age_value < MIN_AGE or age_value > MAX_AGE:
                    errors.append(f"Age must be between {MIN_AGE} and {MAX_AGE}")
        return errors

    @staticmethod
    def validate_format(
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        confirm_password: str,
        role: str,
        age=None,
    ) -> list[str]:
        """Validate registration data format without using the database."""
        errors = User.validate_profile(first_name, last_name, age)

        email_pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
        if not email or not re.match(email_pattern, email):
            errors.append("Valid email required")

        if not password or len(password) < MIN_PASSWORD_LENGTH:
            errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        elif password != confirm_password:
            errors.append("Passwords do not match")

        if role not in ROLES:
            errors.append("Invalid role selected")

        return errors

    def match_history(self) -> list[dict]:
        """Tournament and individual matches merged, newest first."""
        history: list[dict] = []

        tournament_matches = (
            Match.query.filter(or_(Match.player1_id == self.id, Match.player2_id == self.id))
            .order_by(Match.created_at.desc())
            .all()
        )
        for match in tournament_matches:
            side = match.side_of(self.id)
            own, opponent = match.points_for(side)
            history.append(
                {
                    'kind': 'tournament',
                    'match': match,
                    'status': match.status,
                    'won': match.winner_id == self.id,
                    'opponent_name': match.player2_name if side == 1 else match.player1_name,
                    'player_score': own,
                    'opponent_score': opponent,
                    'score_display': score_display(match.scores, flip=side == 2),
                    'context_display': match.group_name or 'Tournament',
                    'created_at': match.created_at,
                }
            )

        entries = IndividualMatchPlayer.query.filter_by(user_id=self.id).all()
        for entry in entries:
            match = entry.match
            own, opponent = match.points_for(entry.side)
            history.append(
                {
                    'kind': 'individual',
                    'match': match,
                    'status': match.status,
                    'won': match.winning_side == entry.side,
                    'opponent_name': match.team_name(2 if entry.side == 1 else 1),
                    'player_score': own,
                    'opponent_score': opponent,
                    'score_display': score_display(match.scores, flip=entry.side == 2),
                    'context_display': f"{match.match_mode.capitalize()} {match.match_type}",
                    'created_at': match.created_at,
                }
            )

        history.sort(key=lambda item: item['created_at'] or datetime.min, reverse=True)
        return history

    def statistics(self) -> dict:
        return {
            'elo': self.elo,
            'matches_played': self.matches_played,
            'matches_won': self.matches_won,
            'matches_lost': (self.matches_played or 0) - (self.matches_won or 0),
            'win_rate': self.win_rate,
            'tournaments_played': self.tournaments_played,
            'last_elo_change': self.last_elo_change,
        }

    @classmethod
    def leaderboard(cls, limit: int = 10) -> list[dict]:
        players = (
            cls.query.filter_by(role='player', is_disabled=False)
            .order_by(cls.elo.desc(), cls.matches_won.desc(), cls.id.asc())
            .limit(limit)
            .all()
        )
        return [
            {
                'rank': rank,
                'user': player,
                'name': player.full_name,
                'elo': player.elo,
                'matches_played': player.matches_played,
                'matches_won': player.matches_won,
                'win_rate': player.win_rate,
            }
            for rank, player in enumerate(players, start=1)
        ]


class Tournament(db.Model):
    __tablename__ = 'tournament'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    date = db.Column(db.Date, nullable=False)
    time = db.Column(db.Time, nullable=False, default=time(18, 0))
    format = db.Column(db.String(40), nullable=False, default=DEFAULT_FORMAT)
    group_size = db.Column(db.Integer, nullable=False, default=4)
    max_participants = db.Column(db.Integer, nullable=False, default=16)
    description = db.Column(db.Text)
    requires_approval = db.Column(db.Boolean, nullable=False, default=False)
    join_password_hash = db.Column(db.String(255))
    status = db.Column(db.String(20), default='upcoming')  # upcoming, active, completed
    group_settings = db.Column(db.JSON, default=dict)
    elo_changes = db.Column(db.JSON)
    final_standings = db.Column(db.JSON)
    created_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=current_time)
    updated_at = db.Column(db.DateTime, default=current_time, onupdate=current_time)
    completed_at = db.Column(db.DateTime)

    participants = db.relationship(
        'TournamentParticipant',
        back_populates='tournament',
        lazy=True,
        cascade='all, delete-orphan',
        order_by='TournamentParticipant.id',
    )
    matches = db.relationship(
        'Match', backref='tournament', lazy=True, cascade='all, delete-orphan', order_by='Match.id'
    )

    def __repr__(self):  # pragma: no cover - debug helper
        return f"<Tournament {self.id} {self.name}>"

    @validates('format')
    def validate_format(self, key, value):
        if value not in FORMAT_OPTIONS:
            raise ValueError('Please choose a valid match format')
        return value

    @validates('group_size')
    def validate_group_size(self, key, value):
        value = int(value)
        if value < MIN_GROUP_SIZE or value > MAX_GROUP_SIZE:
            raise ValueError(f'Group size must be between {MIN_GROUP_SIZE} and {MAX_GROUP_SIZE}')
        return value

    @validates('max_participants')
    def validate_max_participants(self, key, value):
        value = int(value)
        if value < 2:
            raise ValueError('A tournament needs room for at least two participants')
        return value

    def set_join_password(self, password: str | None) -> None:
        self.join_password_hash = generate_password_hash(password) if password else None

    def check_join_password(self, password: str | None) -> bool:
        if not self.join_password_hash:
            return True
        return bool(password) and check_password_hash(self.join_password_hash, password)

    @property
    def is_rated(self) -> bool:
        """Ratings have been applied; nothing in the tournament may change."""
        return self.completed_at is not None

    @property
    def match_format(self):
        return parse_match_format(self.format)

    def refresh_status(self, now: datetime | None = None) -> str:
        status = calculate_tournament_status(self, now)
        if status != self.status:
            self.status = status
        return status

    @property
    def confirmed_participants(self):
        return [p for p in self.participants if p.status == 'confirmed']

    @property
    def pending_participants(self):
        return [p for p in self.participants if p.status == 'pending']

    @property
    def is_full(self) -> bool:
        return len(self.participants) >= self.max_participants

    @property
    def groups(self) -> dict:
        grouped: dict[str, list] = {}
        for participant in self.confirmed_participants:
            if participant.group_name:
                grouped.setdefault(participant.group_name, []).append(participant)
        for members in grouped.values():
            members.sort(key=lambda p: p.elo or DEFAULT_ELO, reverse=True)
        return dict(sorted(grouped.items()))

    @property
    def pending_matches(self):
        return [m for m in self.matches if m.status != 'completed']

    def participant_for(self, user_id: int):
        for participant in self.participants:
            if participant.user_id == user_id:
                return participant
        return None

    def join(self, user, password: str | None = None, auto_commit: bool = False):
        """Register a member for this tournament, snapshotting their rating."""
        if self.is_rated:
            raise ValueError('This tournament has already been completed')
        if user.is_disabled:
            raise ValueError('Disabled accounts cannot join tournaments')
        if self.participant_for(user.id):
            raise ValueError('You have already joined this tournament')
        if self.is_full:
            raise ValueError('This tournament is full')
        if not self.check_join_password(password):
            raise ValueError('Incorrect tournament password')

        participant = TournamentParticipant(
            user_id=user.id,
            name=user.full_name,
            elo=user.elo if user.elo is not None else DEFAULT_ELO,
            status='pending' if self.requires_approval else 'confirmed',
        )
        self.participants.append(participant)
        logger.info('User %s joined tournament %s (%s)', user.id, self.id, participant.status)

        if auto_commit:
            db.session.commit()
        return participant

    def leave(self, user, auto_commit: bool = False) -> None:
        participant = self.participant_for(user.id)
        if not participant:
            raise ValueError('You are not registered for this tournament')
        if self.is_rated:
            raise ValueError('This tournament has already been completed')
        if participant.has_matches():
            raise ValueError('You already have matches scheduled in this tournament')

        self.participants.remove(participant)
        db.session.delete(participant)
        logger.info('User %s left tournament %s', user.id, self.id)

        if auto_commit:
            db.session.commit()

    def review_participant(self, participant_id: int, approve: bool):
        participant = next((p for p in self.participants if p.id == participant_id), None)
        if not participant:
            raise ValueError('Participant not found')
        if participant.status != 'pending':
            raise ValueError('Only pending participants can be reviewed')

        if approve:
            participant.status = 'confirmed'
        else:
            self.participants.remove(participant)
            db.session.delete(participant)
        return participant

    def format_for_group(self, group_name: str | None) -> str:
        settings = (self.group_settings or {}).get(group_name or '', {})
        return settings.get('format') or self.format

    def update_group_settings(self, group_name: str, match_format: str) -> int:
        """Override the format of one group; returns the number of matches updated."""
        if self.is_rated:
            raise ValueError('This tournament has already been completed')
        if group_name not in self.groups:
            raise ValueError('Unknown group')
        if match_format not in FORMAT_OPTIONS:
            raise ValueError('Please choose a valid match format')

        settings = dict(self.group_settings or {})
        settings[group_name] = {'format': match_format}
        self.group_settings = settings

        updated = 0
        for match in self.matches:
            if match.group_name == group_name and match.status != 'completed':
                match.format = match_format
                updated += 1
        return updated

    def generate_groups(self, actor) -> list[list]:
        """Snake-draft confirmed participants into groups and schedule round-robins."""
        if self.is_rated:
            raise ValueError('This tournament has already been completed')
        if self.matches:
            raise ValueError('Groups have already been generated for this tournament')

        confirmed = self.confirmed_participants
        if len(confirmed) < 2:
            raise ValueError('At least two confirmed participants are needed to generate groups')

        groups = generate_groups(confirmed, self.group_size)
        for index, members in enumerate(groups):
            name = group_label(index)
            match_format = self.format_for_group(name)
            for participant in members:
                participant.group_name = name
            for first, second in round_robin_pairs(members):
                self.matches.append(
                    Match(
                        player1_id=first.user_id,
                        player1_name=first.name,
                        player2_id=second.user_id,
                        player2_name=second.name,
                        group_name=name,
                        format=match_format,
                        created_by=actor.id,
                    )
                )
            highest, lowest = group_rating_spread(members)
            logger.info(
                'Tournament %s %s: %d players, ELO %s-%s', self.id, name, len(members), highest, lowest
            )

        logger.info(
            'Generated %d groups for %d participants in tournament %s (sizes %s)',
            len(groups),
            len(confirmed),
            self.id,
            ', '.join(str(len(g)) for g in groups),
        )
        return groups

    def add_match(self, player1_id: int, player2_id: int, actor, group_name: str | None = None):
        if self.is_rated:
            raise ValueError('This tournament has already been completed')
        if player1_id == player2_id:
            raise ValueError('A player cannot play against themselves')

        first = self.participant_for(player1_id)
        second = self.participant_for(player2_id)
        if not first or not second or first.status != 'confirmed' or second.status != 'confirmed':
            raise ValueError('Both players must be confirmed participants of this tournament')

        group_name = group_name or (first.group_name if first.group_name == second.group_name else None)
        match = Match(
            player1_id=first.user_id,
            player1_name=first.name,
            player2_id=second.user_id,
            player2_name=second.name,
            group_name=group_name,
            format=self.format_for_group(group_name),
            created_by=actor.id,
        )
        self.matches.append(match)
        return match

    def standings(self) -> list[dict]:
        """Per-participant results, best record first."""
        table: dict[int, dict] = {}
        for participant in self.confirmed_participants:
            table[participant.user_id] = {
                'user_id': participant.user_id,
                'name': participant.name,
                'group_name': participant.group_name,
                'starting_elo': participant.elo or DEFAULT_ELO,
                'matches_played': 0,
                'matches_won': 0,
                'points_scored': 0,
                'points_conceded': 0,
            }

        for match in self.matches:
            if match.status != 'completed':
                continue
            for side, user_id in ((1, match.player1_id), (2, match.player2_id)):
                row = table.get(user_id)
                if row is None:
                    continue
                own, opponent = match.points_for(side)
                row['matches_played'] += 1
                row['points_scored'] += own
                row['points_conceded'] += opponent
                if match.winner_id == user_id:
                    row['matches_won'] += 1

        rows = []
        for row in table.values():
            row['point_difference'] = row['points_scored'] - row['points_conceded']
            rows.append(row)
        rows.sort(key=lambda r: (r['matches_won'], r['point_difference']), reverse=True)
        return rows

    def summary(self) -> dict:
        completed = [m for m in self.matches if m.status == 'completed']
        return {
            'tournament': self,
            'matches': self.matches,
            'standings': self.standings(),
            'total_matches': len(self.matches),
            'completed_matches': len(completed),
        }

    def complete(self) -> dict:
        """Apply rating changes for every finished match and close the tournament."""
        if self.is_rated:
            raise ValueError('Tournament is already completed')

        pending = self.pending_matches
        if pending:
            raise ValueError(f'{len(pending)} match(es) still pending. Complete all matches first.')

        participants = self.confirmed_participants
        starting_elos = {p.user_id: p.elo or DEFAULT_ELO for p in participants}
        users = {p.user_id: p.user for p in participants}
        matches_before = {user_id: user.matches_played or 0 for user_id, user in users.items()}

        elo_changes = {user_id: 0 for user_id in users}
        match_stats = {user_id: {'played': 0, 'won': 0} for user_id in users}

        for match in self.matches:
            if not match.winner_id or not match.player1_id or not match.player2_id:
                logger.warning('Skipping match %s without a recorded winner', match.id)
                continue

            winner_id = match.winner_id
            loser_id = match.player2_id if winner_id == match.player1_id else match.player1_id
            winner_elo = starting_elos.get(winner_id, DEFAULT_ELO)
            loser_elo = starting_elos.get(loser_id, DEFAULT_ELO)

            winner_change = calculate_elo_change(winner_elo, loser_elo, True, matches_before.get(winner_id, 0))
            loser_change = calculate_elo_change(loser_elo, winner_elo, False, matches_before.get(loser_id, 0))

            if winner_id in elo_changes:
                elo_changes[winner_id] += winner_change
                match_stats[winner_id]['played'] += 1
                match_stats[winner_id]['won'] += 1
            if loser_id in elo_changes:
                elo_changes[loser_id] += loser_change
                match_stats[loser_id]['played'] += 1

        for user_id, user in users.items():
            stats = match_stats[user_id]
            change = elo_changes[user_id]
            user.elo = (user.elo or DEFAULT_ELO) + change
            user.matches_played = (user.matches_played or 0) + stats['played']
            user.matches_won = (user.matches_won or 0) + stats['won']
            user.tournaments_played = (user.tournaments_played or 0) + 1
            user.last_elo_change = change

        standings = [
            {
                'id': user_id,
                'name': users[user_id].full_name,
                'played': stats['played'],
                'won': stats['won'],
                'elo_change': elo_changes[user_id],
            }
            for user_id, stats in match_stats.items()
        ]
        standings.sort(key=lambda row: (row['won'], row['played']), reverse=True)

        self.elo_changes = {str(user_id): change for user_id, change in elo_changes.items()}
        self.final_standings = standings
        self.status = 'completed'
        self.completed_at = current_time()

        logger.info('Tournament %s completed; ELO changes %s', self.id, self.elo_changes)
        return {'elo_changes': elo_changes, 'match_stats': match_stats}


class TournamentParticipant(db.Model):
    """A member's entry in a tournament with the rating they joined at."""

    __tablename__ = 'tournament_participant'

    id = db.Column(db.Integer, primary_key=True)
    tournament_id = db.Column(db.Integer, db.ForeignKey('tournament.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    name = db.Column(db.String(130), nullable=False)
    elo = db.Column(db.Integer, nullable=False, default=DEFAULT_ELO)
    status = db.Column(db.String(20), default='confirmed')  # confirmed, pending
    group_name = db.Column(db.String(20))
    joined_at = db.Column(db.DateTime, default=current_time)

    __table_args__ = (db.UniqueConstraint('tournament_id', 'user_id', name='unique_tournament_participant'),)

    tournament = db.relationship('Tournament', back_populates='participants')
    user = db.relationship('User', back_populates='participations')

    def has_matches(self) -> bool:
        return any(match.involves(self.user_id) for match in self.tournament.matches)


class Match(db.Model):
    """A tournament match between two participants."""

    __tablename__ = 'match'

    id = db.Column(db.Integer, primary_key=True)
    tournament_id = db.Column(db.Integer, db.ForeignKey('tournament.id'), nullable=False)
    player1_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    player2_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    player1_name = db.Column(db.String(130), nullable=False)
    player2_name = db.Column(db.String(130), nullable=False)
    group_name = db.Column(db.String(20))
    format = db.Column(db.String(40), nullable=False, default=DEFAULT_FORMAT)
    status = db.Column(db.String(20), default='pending')  # pending, completed
    scores = db.Column(db.JSON, default=list)
    winner_id = db.Column(db.Integer, db.ForeignKey('users.id'))
    created_by = db.Column(db.Integer, db.ForeignKey('users.id'))
    created_at = db.Column(db.DateTime, default=current_time)
    updated_at = db.Column(db.DateTime, default=current_time, onupdate=current_time)
    completed_at = db.Column(db.DateTime)

    player1 = db.relationship('User', foreign_keys=[player1_id])
    player2 = db.relationship('User', foreign_keys=[player2_id])
    winner = db.relationship('User', foreign_keys=[winner_id])

    @property
    def match_format(self):
        return parse_match_format(self.format)

    @property
    def versus_display(self) -> str:
        return f"{self.player1_name} vs {self.player2_name}"

    @property
    def score_display(self) -> str:
        return score_display(self.scores)

    @property
    def winner_name(self) -> str | None:
        if self.winner_id == self.player1_id:
            return self.player1_name
        if self.winner_id == self.player2_id:
            return self.player2_name
        return None

    def involves(self, user_id: int) -> bool:
        return user_id in (self.player1_id, self.player2_id)

    def side_of(self, user_id: int) -> int | None:
        if user_id == self.player1_id:
            return 1
        if user_id == self.player2_id:
            return 2
        return None

    def points_for(self, side: int | None) -> tuple[int, int]:
        first = sum(score[0] for score in self.scores or [])
        second = sum(score[1] for score in self.scores or [])
        return (second, first) if side == 2 else (first, second)

    def record_scores(self, scores: list[list[int]]) -> int:
        """Validate scores against the format and complete the match; returns winner id."""
        if self.tournament and self.tournament.is_rated:
            raise ValueError('Scores cannot change after the tournament is completed')

        fmt = self.match_format
        validate_scores(fmt, scores)
        side = determine_winner(fmt, scores)

        self.scores = [list(score) for score in scores]
        self.winner_id = self.player1_id if side == 1 else self.player2_id
        self.status = 'completed'
        self.completed_at = current_time()
        logger.info('Match %s completed: %s (%s)', self.id, self.winner_name, self.score_display)
        return self.winner_id


class IndividualMatch(db.Model):
    """A 1v1 or 2v2 match played outside any tournament."""

    __tablename__ = 'individual_match'

    id = db.Column(db.Integer, primary_key=True)
    match_type = db.Column(db.String(5), nullable=False, default='1v1')
    match_mode = db.Column(db.String(10), nullable=False, default='ranked')
    format = db.Column(db.String(20), nullable=False, default='best-of-3')
    points_per_game = db.Column(db.Integer, nullable=False, default=11)
    team1_avg_elo = db.Column(db.Float)
    team2_avg_elo = db.Column(db.Float)
    status = db.Column(db.String(20), default='pending')  # pending, in-progress, completed, cancelled
    scores = db.Column(db.JSON, default=list)
    winning_side = db.Column(db.Integer)
    created_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=current_time)
    updated_at = db.Column(db.DateTime, default=current_time, onupdate=current_time)
    completed_at = db.Column(db.DateTime)
    cancelled_at = db.Column(db.DateTime)

    entries = db.relationship(
        'IndividualMatchPlayer',
        backref='match',
        lazy=True,
        cascade='all, delete-orphan',
        order_by='IndividualMatchPlayer.id',
    )
    creator = db.relationship('User', foreign_keys=[created_by])

    @classmethod
    def create(cls, match_type, match_mode, match_format, points_per_game, team1, team2, created_by):
        """Build a match for two lists of users after checking the line-up."""
        if match_type not in MATCH_TYPES:
            raise ValueError('Match type must be 1v1 or 2v2')
        if match_mode not in MATCH_MODES:
            raise ValueError('Match mode must be ranked or casual')
        if match_format not in INDIVIDUAL_FORMAT_OPTIONS:
            raise ValueError('Please choose a valid match format')
        try:
            points_per_game = int(points_per_game)
        except (TypeError, ValueError):
            raise ValueError('Points per game must be a number') from None
        if points_per_game < 1:
            raise ValueError('Points per game must be positive')

        team_size = MATCH_TYPES[match_type]
        if len(team1) != team_size or len(team2) != team_size:
            raise ValueError(f'Each side needs exactly {team_size} player(s) for a {match_type} match')

        everyone = list(team1) + list(team2)
        if any(user is None for user in everyone):
            raise ValueError('Selected player was not found')
        if len({user.id for user in everyone}) != len(everyone):
            raise ValueError('A player can only appear once in a match')
        if any(user.is_disabled for user in everyone):
            raise ValueError('Disabled members cannot be added to matches')

        match = cls(
            match_type=match_type,
            match_mode=match_mode,
            format=match_format,
            points_per_game=points_per_game,
            team1_avg_elo=team_average_elo(user.elo for user in team1),
            team2_avg_elo=team_average_elo(user.elo for user in team2),
            status='pending',
            scores=[],
            created_by=created_by.id,
        )
        for side, team in ((1, team1), (2, team2)):
            for user in team:
                match.entries.append(IndividualMatchPlayer(user_id=user.id, side=side, elo_before=user.elo))
        return match

    @property
    def match_format(self):
        return parse_match_format(self.format, self.points_per_game)

    @property
    def is_open(self) -> bool:
        return self.status in ('pending', 'in-progress')

    def team(self, side: int):
        return [entry for entry in self.entries if entry.side == side]

    def team_name(self, side: int) -> str:
        return ' & '.join(entry.user.full_name for entry in self.team(side))

    @property
    def versus_display(self) -> str:
        return f"{self.team_name(1)} vs {self.team_name(2)}"

    @property
    def score_display(self) -> str:
        return score_display(self.scores)

    def involves(self, user_id: int) -> bool:
        return any(entry.user_id == user_id for entry in self.entries)

    def points_for(self, side: int | None) -> tuple[int, int]:
        first = sum(score[0] for score in self.scores or [])
        second = sum(score[1] for score in self.scores or [])
        return (second, first) if side == 2 else (first, second)

    def update_scores(self, scores: list[list[int]]) -> int | None:
        """Store scores; completes the match once they decide a winner."""
        if not self.is_open:
            raise ValueError(f'Match is already {self.status}')

        fmt = self.match_format
        validate_scores(fmt, scores, require_winner=False)
        side = determine_winner(fmt, scores)
        if side is None:
            self.scores = [list(score) for score in scores]
            self.status = 'in-progress'
            return None

        self.complete(scores, side)
        return side

    def complete(self, scores: list[list[int]], winning_side: int) -> dict:
        """Finish the match and apply rating changes when it is ranked."""
        if self.status == 'completed':
            raise ValueError('Match is already completed')
        if self.status == 'cancelled':
            raise ValueError('Cancelled matches cannot be completed')
        if winning_side not in (1, 2):
            raise ValueError('Winner must be side 1 or side 2')

        avg_elo = {1: self.team1_avg_elo or DEFAULT_ELO, 2: self.team2_avg_elo or DEFAULT_ELO}
        losing_side = 2 if winning_side == 1 else 1
        changes: dict[int, int] = {}

        for entry in self.entries:
            user = entry.user
            won = entry.side == winning_side
            if self.match_mode == 'ranked':
                opponent_avg = avg_elo[losing_side] if won else avg_elo[winning_side]
                change = calculate_elo_change(entry.elo_before, opponent_avg, won, user.matches_played or 0)
                user.record_match(won, change)
            else:
                change = 0
                user.record_match(won)
            entry.elo_change = change
            changes[user.id] = change

        self.scores = [list(score) for score in scores]
        self.winning_side = winning_side
        self.status = 'completed'
        self.completed_at = current_time()
        logger.info('Individual match %s completed; side %s won; changes %s', self.id, winning_side, changes)
        return changes

    def cancel(self) -> None:
        if self.status == 'completed':
            raise ValueError('Completed matches cannot be cancelled')
        if self.status == 'cancelled':
            raise ValueError('Match is already cancelled')
        self.status = 'cancelled'
        self.cancelled_at = current_time()

    @classmethod
    def open_matches(cls):
        return (
            cls.query.filter(cls.status.in_(['pending', 'in-progress']))
            .order_by(cls.created_at.desc(), cls.id.desc())
            .all()
        )

    @classmethod
    def recent(cls, limit: int = 10):
        return cls.query.order_by(cls.created_at.desc(), cls.id.desc()).limit(limit).all()

    @classmethod
    def for_player(cls, user_id: int):
        return (
            cls.query.join(IndividualMatchPlayer)
            .filter(IndividualMatchPlayer.user_id == user_id)
            .order_by(cls.created_at.desc(), cls.id.desc())
            .all()
        )


class IndividualMatchPlayer(db.Model):
    __tablename__ = 'individual_match_player'

    id = db.Column(db.Integer, primary_key=True)
    match_id = db.Column(db.Integer, db.ForeignKey('individual_match.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    side = db.Column(db.Integer, nullable=False)
    elo_before = db.Column(db.Integer, nullable=False, default=DEFAULT_ELO)
    elo_change = db.Column(db.Integer)

    __table_args__ = (db.UniqueConstraint('match_id', 'user_id', name='unique_match_player'),)

    user = db.relationship('User')


def init_default_data(admin_email: str = 'admin@clubcourt.local', admin_password: str = 'admin123'):
    """Make sure there is an owner account to log in with."""
    owner = User.query.filter_by(role='owner').first()
    if owner:
        return owner

    owner = User(
        email=admin_email,
        first_name='Club',
        last_name='Owner',
        role='owner',
    )
    owner.set_password(admin_password)
    db.session.add(owner)
    db.session.commit()
    logger.info('Created default owner account %s', admin_email)
    return owner
