from flask import Blueprint, render_template, request, redirect, url_for, flash, g
from sqlalchemy import or_
from datetime import datetime
from functools import wraps
import logging

from models import (
    db,
    User,
    Tournament,
    Match,
    IndividualMatch,
    IndividualMatchPlayer,
    MIN_GROUP_SIZE,
    MAX_GROUP_SIZE,
)
from match_format import FORMAT_OPTIONS, DEFAULT_FORMAT
from blueprints.auth import require_owner
from blueprints.public import share_links

owner_bp = Blueprint('owner', __name__, url_prefix='/owner')
logger = logging.getLogger(__name__)

MEMBER_ACTIONS = ('disable', 'enable', 'remove')


def require_tournament_access(f):
    """Require the owner created the tournament"""
    @wraps(f)
    def decorated_function(tournament_id, *args, **kwargs):
        tournament = db.get_or_404(Tournament, tournament_id)

        if tournament.created_by != g.current_user.id:
            flash('You do not have access to this tournament.', 'error')
            return redirect(url_for('owner.dashboard'))
        g.tournament_context = tournament
        return f(tournament_id, *args, **kwargs)
    return decorated_function


def _parse_tournament_form(form) -> dict:
    name = form.get('name', '').strip()
    if not name:
        raise ValueError('Tournament name is required!')

    try:
        event_date = datetime.strptime(form.get('date', ''), '%Y-%m-%d').date()
        event_time = datetime.strptime(form.get('time', '18:00'), '%H:%M').time()
    except ValueError:
        raise ValueError('Provide a valid date and time in the format YYYY-MM-DD and HH:MM.') from None

    try:
        group_size = int(form.get('group_size', 4))
        max_participants = int(form.get('max_participants', 16))
    except ValueError:
        raise ValueError('Group size and maximum participants must be numbers.') from None

    return {
        'name': name,
        'date': event_date,
        'time': event_time,
        'format': form.get('format', DEFAULT_FORMAT),
        'group_size': group_size,
        'max_participants': max_participants,
        'description': form.get('description', '').strip(),
        'requires_approval': form.get('requires_approval') in ('on', 'true', '1'),
    }


@owner_bp.route('/dashboard')
@require_owner
def dashboard():
    """Owner dashboard showing all tournaments created by this owner"""
    my_tournaments = (
        Tournament.query.filter_by(created_by=g.current_user.id)
        .order_by(Tournament.created_at.desc())
        .all()
    )
    for tournament in my_tournaments:
        tournament.refresh_status()
    db.session.commit()

    pending_summary = [
        {'tournament': tournament, 'participants': tournament.pending_participants}
        for tournament in my_tournaments
        if tournament.pending_participants
    ]

    stats = {
        'total_tournaments': len(my_tournaments),
        'active_tournaments': len([t for t in my_tournaments if t.status == 'active']),
        'total_participants': sum(len(t.participants) for t in my_tournaments),
        'pending_matches': sum(len(t.pending_matches) for t in my_tournaments),
        'total_members': User.query.count(),
    }

    return render_template(
        'owner/dashboard.html',
        tournaments=my_tournaments,
        pending_summary=pending_summary,
        stats=stats,
    )


@owner_bp.route('/tournaments/new', methods=['GET', 'POST'])
@require_owner
def create_tournament():
    """Create a new tournament"""
    if request.method == 'POST':
        try:
            fields = _parse_tournament_form(request.form)
            tournament = Tournament(created_by=g.current_user.id, **fields)
            tournament.set_join_password(request.form.get('password', '').strip() or None)
            tournament.refresh_status()

            db.session.add(tournament)
            db.session.commit()
            logger.info('Tournament %s created by %s', tournament.id, g.current_user.id)

            flash(f'Tournament "{tournament.name}" created successfully!', 'success')
            return redirect(url_for('owner.tournament_detail', tournament_id=tournament.id))

        except ValueError as e:
            db.session.rollback()
            flash(str(e), 'error')
        except Exception:
            db.session.rollback()
            logger.exception('Error creating tournament')
            flash('Error creating tournament.', 'error')

    return render_template(
        'owner/create-tournament.html',
        formats=FORMAT_OPTIONS,
        min_group_size=MIN_GROUP_SIZE,
        max_group_size=MAX_GROUP_SIZE,
        form=request.form,
    )


@owner_bp.route('/tournament/<int:tournament_id>')
@require_owner
@require_tournament_access
def tournament_detail(tournament_id):
    """Manage participants, groups, matches and completion"""
    tournament = g.tournament_context
    tournament.refresh_status()
    db.session.commit()

    summary = tournament.summary()
    links = share_links(tournament)

    return render_template(
        'owner/tournament-detail.html',
        tournament=tournament,
        summary=summary,
        groups=tournament.groups,
        formats=FORMAT_OPTIONS,
        join_url=links['join_url'],
        whatsapp_url=links['whatsapp_url'],
    )


@owner_bp.route('/tournament/<int:tournament_id>/groups', methods=['POST'])
@require_owner
@require_tournament_access
def generate_groups(tournament_id):
    """Snake-draft participants into groups and schedule their matches"""
    tournament = g.tournament_context
    try:
        groups = tournament.generate_groups(actor=g.current_user)
        db.session.commit()
        match_count = len(tournament.matches)
        flash(f'Generated {len(groups)} group(s) with {match_count} match(es).', 'success')
    except ValueError as e:
        db.session.rollback()
        flash(str(e), 'error')

    return redirect(url_for('owner.tournament_detail', tournament_id=tournament_id))


@owner_bp.route('/tournament/<int:tournament_id>/group-settings', methods=['POST'])
@require_owner
@require_tournament_access
def group_settings(tournament_id):
    """Override the match format for a single group"""
    tournament = g.tournament_context
    group_name = request.form.get('group_name', '')
    match_format = request.form.get('format', '')
    try:
        updated = tournament.update_group_settings(group_name, match_format)
        db.session.commit()
        flash(f'{group_name} now plays {match_format} ({updated} match(es) updated).', 'success')
    except ValueError as e:
        db.session.rollback()
        flash(str(e), 'error')

    return redirect(url_for('owner.tournament_detail', tournament_id=tournament_id))


@owner_bp.route('/tournament/<int:tournament_id>/matches', methods=['POST'])
@require_owner
@require_tournament_access
def create_match(tournament_id):
    """Schedule an extra match between two participants"""
    tournament = g.tournament_context
    try:
        player1_id = int(request.form['player1_id'])
        player2_id = int(request.form['player2_id'])
    except (KeyError, ValueError):
        flash('Select two players for the match.', 'error')
        return redirect(url_for('owner.tournament_detail', tournament_id=tournament_id))

    try:
        match = tournament.add_match(
            player1_id,
            player2_id,
            actor=g.current_user,
            group_name=request.form.get('group_name') or None,
        )
        db.session.commit()
        flash(f'Match created: {match.versus_display}', 'success')
    except ValueError as e:
        db.session.rollback()
        flash(str(e), 'error')

    return redirect(url_for('owner.tournament_detail', tournament_id=tournament_id))


@owner_bp.route('/tournament/<int:tournament_id>/participants/<int:participant_id>', methods=['POST'])
@require_owner
@require_tournament_access
def review_participant(tournament_id, participant_id):
    """Approve or reject a pending join request"""
    tournament = g.tournament_context
    action = request.form.get('action')
    if action not in ('approve', 'reject'):
        flash('Unsupported action.', 'error')
        return redirect(url_for('owner.tournament_detail', tournament_id=tournament_id))

    try:
        participant = tournament.review_participant(participant_id, approve=action == 'approve')
        db.session.commit()
        if action == 'approve':
            flash(f'{participant.name} approved.', 'success')
        else:
            flash(f'{participant.name} rejected.', 'info')
    except ValueError as e:
        db.session.rollback()
        flash(str(e), 'error')

    return redirect(url_for('owner.tournament_detail', tournament_id=tournament_id))


@owner_bp.route('/tournament/<int:tournament_id>/complete', methods=['POST'])
@require_owner
@require_tournament_access
def complete_tournament(tournament_id):
    """Close the tournament and apply rating changes"""
    tournament = g.tournament_context
    try:
        tournament.complete()
        db.session.commit()
        flash(f'Tournament "{tournament.name}" completed. Ratings updated.', 'success')
    except ValueError as e:
        db.session.rollback()
        flash(str(e), 'error')
    except Exception:
        db.session.rollback()
        logger.exception('Error completing tournament %s', tournament_id)
        flash('Error completing tournament.', 'error')

    return redirect(url_for('owner.tournament_detail', tournament_id=tournament_id))


@owner_bp.route('/members')
@require_owner
def members():
    """Member management"""
    users = User.query.order_by(User.created_at.desc(), User.id.desc()).all()
    counts = {
        'total': len(users),
        'owners': len([u for u in users if u.role == 'owner']),
        'players': len([u for u in users if u.role == 'player']),
        'disabled': len([u for u in users if u.is_disabled]),
    }
    return render_template('owner/members.html', users=users, counts=counts)


def _has_match_records(user: User) -> bool:
    tournament_matches = Match.query.filter(
        or_(Match.player1_id == user.id, Match.player2_id == user.id)
    ).count()
    individual_matches = IndividualMatchPlayer.query.filter_by(user_id=user.id).count()
    matches_set_up = IndividualMatch.query.filter_by(created_by=user.id).count()
    return bool(
        tournament_matches
        or individual_matches
        or matches_set_up
        or user.participations
        or user.tournaments_created
    )


@owner_bp.route('/members/<int:user_id>/<action>', methods=['POST'])
@require_owner
def member_action(user_id, action):
    """Disable, enable or remove a member"""
    if action not in MEMBER_ACTIONS:
        flash('Unsupported member action.', 'error')
        return redirect(url_for('owner.members'))

    member = db.get_or_404(User, user_id)
    if member.id == g.current_user.id:
        flash('You cannot change your own account here.', 'error')
        return redirect(url_for('owner.members'))

    if action == 'disable':
        member.is_disabled = True
        message = f'{member.full_name} has been disabled.'
    elif action == 'enable':
        member.is_disabled = False
        message = f'{member.full_name} has been enabled.'
    else:
        if _has_match_records(member):
            flash('Members with match history cannot be removed. Disable the account instead.', 'error')
            return redirect(url_for('owner.members'))
        message = f'{member.full_name} has been removed.'
        db.session.delete(member)

    try:
        db.session.commit()
        logger.info('Owner %s performed %s on member %s', g.current_user.id, action, user_id)
        flash(message, 'success')
    except Exception:
        db.session.rollback()
        logger.exception('Error performing %s on member %s', action, user_id)
        flash('Error updating member.', 'error')

    return redirect(url_for('owner.members'))
