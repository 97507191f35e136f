from flask import Blueprint, abort, render_template, request, redirect, url_for, flash, g
import logging

from models import db, User, Match, IndividualMatch, MATCH_TYPES, MATCH_MODES
from match_format import (
    INDIVIDUAL_FORMAT_OPTIONS,
    score_form_rows,
    scores_from_form,
)
from blueprints.auth import login_required

matches_bp = Blueprint('matches', __name__, url_prefix='/matches')
logger = logging.getLogger(__name__)

RECENT_MATCHES = 10


def can_score_match(user, match: Match) -> bool:
    """Tournament owner or either player"""
    return match.tournament.created_by == user.id or match.involves(user.id)


def can_manage_individual(user, match: IndividualMatch) -> bool:
    """Players in the match, whoever set it up, or a club owner"""
    return user.is_owner or match.created_by == user.id or match.involves(user.id)


@matches_bp.route('/<int:match_id>')
@login_required
def match_detail(match_id):
    match = db.get_or_404(Match, match_id)
    fmt = match.match_format
    return render_template(
        'matches/detail.html',
        match=match,
        fmt=fmt,
        # Tournament results are entered in one go
        game_rows=fmt.games,
        can_score=can_score_match(g.current_user, match) and not match.tournament.is_rated,
    )


@matches_bp.route('/<int:match_id>/score', methods=['POST'])
@login_required
def record_score(match_id):
    """Enter game scores for a tournament match"""
    match = db.get_or_404(Match, match_id)
    if not can_score_match(g.current_user, match):
        abort(403)

    try:
        scores = scores_from_form(request.form, match.match_format.games)
        match.record_scores(scores)
        db.session.commit()
        flash(f'Result saved: {match.winner_name} wins ({match.score_display}).', 'success')
    except ValueError as e:
        db.session.rollback()
        flash(str(e), 'error')
    except Exception:
        db.session.rollback()
        logger.exception('Error saving scores for match %s', match_id)
        flash('Error saving scores.', 'error')

    return redirect(url_for('matches.match_detail', match_id=match_id))


@matches_bp.route('/individual')
@login_required
def individual_list():
    return render_template(
        'matches/individual-list.html',
        open_matches=IndividualMatch.open_matches(),
        recent_matches=IndividualMatch.recent(RECENT_MATCHES),
        my_matches=IndividualMatch.for_player(g.current_user.id),
    )


def _selected_users(field: str) -> list:
    users = []
    for raw in request.form.getlist(field):
        if not raw:
            continue
        try:
            users.append(db.session.get(User, int(raw)))
        except ValueError:
            raise ValueError('Selected player was not found') from None
    return users


@matches_bp.route('/individual/new', methods=['GET', 'POST'])
@login_required
def individual_new():
    """Set up a 1v1 or 2v2 match outside of any tournament"""
    if request.method == 'POST':
        try:
            match = IndividualMatch.create(
                match_type=request.form.get('match_type', '1v1'),
                match_mode=request.form.get('match_mode', 'ranked'),
                match_format=request.form.get('format', 'best-of-3'),
                points_per_game=request.form.get('points_per_game', 11),
                team1=_selected_users('team1'),
                team2=_selected_users('team2'),
                created_by=g.current_user,
            )
            db.session.add(match)
            db.session.commit()
            logger.info('Individual match %s created by %s', match.id, g.current_user.id)
            flash(f'Match created: {match.versus_display}', 'success')
            return redirect(url_for('matches.individual_detail', match_id=match.id))
        except ValueError as e:
            db.session.rollback()
            flash(str(e), 'error')

    members = (
        User.query.filter_by(role='player', is_disabled=False)
        .order_by(User.first_name, User.last_name)
        .all()
    )
    return render_template(
        'matches/individual-new.html',
        members=members,
        match_types=list(MATCH_TYPES),
        match_modes=MATCH_MODES,
        formats=INDIVIDUAL_FORMAT_OPTIONS,
        form=request.form,
    )


@matches_bp.route('/individual/<int:match_id>')
@login_required
def individual_detail(match_id):
    match = db.get_or_404(IndividualMatch, match_id)
    fmt = match.match_format
    return render_template(
        'matches/individual-detail.html',
        match=match,
        fmt=fmt,
        game_rows=score_form_rows(fmt, match.scores or []),
        can_manage=can_manage_individual(g.current_user, match) and match.is_open,
    )


@matches_bp.route('/individual/<int:match_id>/score', methods=['POST'])
@login_required
def individual_score(match_id):
    match = db.get_or_404(IndividualMatch, match_id)
    if not can_manage_individual(g.current_user, match):
        abort(403)

    try:
        scores = scores_from_form(request.form, match.match_format.games)
        winning_side = match.update_scores(scores)
        db.session.commit()
        if winning_side:
            flash(f'Match completed: {match.team_name(winning_side)} wins ({match.score_display}).', 'success')
        else:
            flash('Scores saved. Match in progress.', 'info')
    except ValueError as e:
        db.session.rollback()
        flash(str(e), 'error')
    except Exception:
        db.session.rollback()
        logger.exception('Error saving scores for individual match %s', match_id)
        flash('Error saving scores.', 'error')

    return redirect(url_for('matches.individual_detail', match_id=match_id))


@matches_bp.route('/individual/<int:match_id>/cancel', methods=['POST'])
@login_required
def individual_cancel(match_id):
    match = db.get_or_404(IndividualMatch, match_id)
    if not can_manage_individual(g.current_user, match):
        abort(403)

    try:
        match.cancel()
        db.session.commit()
        logger.info('Individual match %s cancelled by %s', match_id, g.current_user.id)
        flash('Match cancelled.', 'info')
    except ValueError as e:
        db.session.rollback()
        flash(str(e), 'error')

    return redirect(url_for('matches.individual_detail', match_id=match_id))
