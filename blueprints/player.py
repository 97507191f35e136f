from flask import Blueprint, render_template, request, redirect, url_for, flash, g
import logging

from models import db, Tournament, IndividualMatch
from blueprints.auth import login_required, require_player

# Join links are shared outside the club, so routes carry their full paths
player_bp = Blueprint('player', __name__)
logger = logging.getLogger(__name__)


@player_bp.route('/player/dashboard')
@require_player
def dashboard():
    """Player dashboard: joined tournaments, open matches and rating"""
    user = g.current_user

    joined = []
    for participant in user.participations:
        tournament = participant.tournament
        tournament.refresh_status()
        pending = [m for m in tournament.pending_matches if m.involves(user.id)]
        joined.append({'tournament': tournament, 'participant': participant, 'pending_matches': pending})
    joined.sort(key=lambda item: (item['tournament'].date, item['tournament'].time), reverse=True)

    joined_ids = {item['tournament'].id for item in joined}
    open_tournaments = [
        t
        for t in Tournament.query.filter(Tournament.completed_at.is_(None))
        .order_by(Tournament.date.asc(), Tournament.time.asc())
        .all()
        if t.id not in joined_ids and t.refresh_status() != 'completed'
    ]
    db.session.commit()

    individual = [m for m in IndividualMatch.for_player(user.id) if m.is_open]

    return render_template(
        'player/dashboard.html',
        user=user,
        stats=user.statistics(),
        joined=joined,
        open_tournaments=open_tournaments,
        individual_matches=individual,
    )


@player_bp.route('/player/profile', methods=['GET', 'POST'])
@login_required
def profile():
    """View statistics and history, update name and age"""
    user = g.current_user

    if request.method == 'POST':
        first_name = request.form.get('first_name', '').strip()
        last_name = request.form.get('last_name', '').strip()
        age = request.form.get('age', '').strip()

        errors = user.validate_profile(first_name, last_name, age)
        if errors:
            for error in errors:
                flash(error, 'error')
        else:
            user.first_name = first_name
            user.last_name = last_name
            user.age = int(age) if age else None
            try:
                db.session.commit()
                flash('Profile updated successfully!', 'success')
                return redirect(url_for('player.profile'))
            except Exception:
                db.session.rollback()
                logger.exception('Error updating profile for user %s', user.id)
                flash('Error updating profile.', 'error')

    return render_template(
        'player/profile.html',
        user=user,
        stats=user.statistics(),
        history=user.match_history(),
    )


@player_bp.route('/join/<int:tournament_id>', methods=['GET', 'POST'])
@require_player
def join_tournament(tournament_id):
    """Landing page for shared join links"""
    tournament = db.get_or_404(Tournament, tournament_id)
    tournament.refresh_status()
    db.session.commit()

    participant = tournament.participant_for(g.current_user.id)

    if request.method == 'POST':
        try:
            participant = tournament.join(g.current_user, password=request.form.get('password'))
            db.session.commit()
        except ValueError as e:
            db.session.rollback()
            flash(str(e), 'error')
            return redirect(url_for('player.join_tournament', tournament_id=tournament_id))

        if participant.status == 'pending':
            flash(f'Request to join "{tournament.name}" sent. Waiting for approval.', 'info')
        else:
            flash(f'You have joined "{tournament.name}"!', 'success')
        return redirect(url_for('public.tournament_detail', tournament_id=tournament_id))

    return render_template(
        'player/join.html',
        tournament=tournament,
        participant=participant,
        needs_password=bool(tournament.join_password_hash),
    )


@player_bp.route('/player/tournament/<int:tournament_id>/leave', methods=['POST'])
@require_player
def leave_tournament(tournament_id):
    tournament = db.get_or_404(Tournament, tournament_id)
    try:
        tournament.leave(g.current_user)
        db.session.commit()
        flash(f'You have left "{tournament.name}".', 'info')
    except ValueError as e:
        db.session.rollback()
        flash(str(e), 'error')

    return redirect(url_for('player.dashboard'))
