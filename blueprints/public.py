"""Public-facing routes for browsing tournaments and the club ladder."""

from datetime import datetime
from urllib.parse import quote

from flask import Blueprint, abort, current_app, render_template, request, url_for, g

from models import db, Tournament, User

public_bp = Blueprint("public", __name__)

MAX_LEADERBOARD_SIZE = 100
TOURNAMENT_STATUSES = ("upcoming", "active", "completed")


def whatsapp_link(join_url: str, tournament_name: str, event_date) -> str:
    """Invitation message that opens WhatsApp with the join link filled in."""
    message = (
        f"You're invited to {tournament_name}!\n\n"
        f"Date: {event_date}\n\n"
        f"Click here to confirm your attendance:\n{join_url}"
    )
    return f"https://wa.me/?text={quote(message)}"


def share_links(tournament: Tournament) -> dict:
    join_url = url_for("player.join_tournament", tournament_id=tournament.id, _external=True)
    return {
        "join_url": join_url,
        "whatsapp_url": whatsapp_link(join_url, tournament.name, tournament.date.isoformat()),
    }


def list_tournaments(status: str | None = None, on_date=None) -> list[Tournament]:
    """Tournaments newest first, filtered on the freshly derived status."""
    query = Tournament.query
    if on_date:
        query = query.filter(Tournament.date == on_date)
    tournaments = query.order_by(Tournament.date.desc(), Tournament.time.desc()).all()

    results = []
    for tournament in tournaments:
        tournament.refresh_status()
        if status and tournament.status != status:
            continue
        results.append(tournament)
    db.session.commit()
    return results


@public_bp.route("/tournaments")
def tournaments_listing():
    status = request.args.get("status") or None
    if status not in TOURNAMENT_STATUSES:
        status = None

    on_date = None
    date_arg = request.args.get("date")
    if date_arg:
        try:
            on_date = datetime.strptime(date_arg, "%Y-%m-%d").date()
        except ValueError:
            abort(400)

    tournaments = list_tournaments(status, on_date)
    user = getattr(g, "current_user", None)
    joined_ids = set()
    if user:
        joined_ids = {p.tournament_id for p in user.participations}

    return render_template(
        "public/tournaments.html",
        tournaments=tournaments,
        status=status,
        date=date_arg,
        joined_ids=joined_ids,
    )


@public_bp.route("/tournament/<int:tournament_id>")
def tournament_detail(tournament_id: int):
    tournament = db.get_or_404(Tournament, tournament_id)
    tournament.refresh_status()
    db.session.commit()

    user = getattr(g, "current_user", None)
    participant = tournament.participant_for(user.id) if user else None

    return render_template(
        "public/tournament-detail.html",
        tournament=tournament,
        summary=tournament.summary(),
        groups=tournament.groups,
        participant=participant,
    )


@public_bp.route("/leaderboard")
def leaderboard():
    default_size = current_app.config.get("LEADERBOARD_SIZE", 10)
    limit = request.args.get("limit", default_size, type=int)
    limit = max(1, min(limit, MAX_LEADERBOARD_SIZE))

    return render_template(
        "public/leaderboard.html",
        entries=User.leaderboard(limit=limit),
        limit=limit,
    )
