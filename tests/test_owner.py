"""
Integration tests for the owner blueprint
Tournament setup, participants, groups, completion and member management
"""
from datetime import date, timedelta

from models import db, Tournament, User, Match, IndividualMatch
from tests.conftest import fresh, login, make_user


def _tournament_form(**overrides):
    data = {
        'name': 'Spring Open',
        'date': (date.today() + timedelta(days=14)).isoformat(),
        'time': '19:30',
        'format': '2 games to 15',
        'group_size': '3',
        'max_participants': '12',
        'description': 'Open to all members',
    }
    data.update(overrides)
    return data


class TestOwnerDashboard:
    def test_dashboard_lists_own_tournaments(self, authenticated_owner, tournament, other_owner):
        other = Tournament(name='Not Mine', date=date.today(), created_by=other_owner.id)
        db.session.add(other)
        db.session.commit()

        response = authenticated_owner.get('/owner/dashboard')
        assert response.status_code == 200
        assert b'Club Night' in response.data
        assert b'Not Mine' not in response.data

    def test_dashboard_shows_join_requests(self, authenticated_owner, tournament, player_user):
        tournament.requires_approval = True
        tournament.join(player_user, auto_commit=True)

        response = authenticated_owner.get('/owner/dashboard')
        assert b'Join requests' in response.data
        assert b'Pat Player' in response.data


class TestCreateTournament:
    def test_create_page_lists_formats(self, authenticated_owner):
        response = authenticated_owner.get('/owner/tournaments/new')
        assert response.status_code == 200
        assert b'Best of 3 to 11' in response.data
        assert b'2 games to 15' in response.data

    def test_create_tournament(self, authenticated_owner, owner_user):
        response = authenticated_owner.post('/owner/tournaments/new', data=_tournament_form(
            requires_approval='on', password='club-only'
        ))
        assert response.status_code == 302

        db.session.expire_all()
        tournament = Tournament.query.filter_by(name='Spring Open').first()
        assert tournament is not None
        assert response.headers['Location'].endswith(f'/owner/tournament/{tournament.id}')
        assert tournament.created_by == owner_user.id
        assert tournament.format == '2 games to 15'
        assert tournament.group_size == 3
        assert tournament.requires_approval is True
        assert tournament.status == 'upcoming'
        assert tournament.check_join_password('club-only')
        assert not tournament.check_join_password('guess')

    def test_create_rejects_invalid_format(self, authenticated_owner):
        response = authenticated_owner.post('/owner/tournaments/new', data=_tournament_form(format='first to 7'))
        assert response.status_code == 200
        assert b'Please choose a valid match format' in response.data
        assert Tournament.query.filter_by(name='Spring Open').first() is None

    def test_create_rejects_group_size(self, authenticated_owner):
        response = authenticated_owner.post('/owner/tournaments/new', data=_tournament_form(group_size='12'))
        assert b'Group size must be between 2 and 8' in response.data

    def test_create_requires_name_and_date(self, authenticated_owner):
        response = authenticated_owner.post('/owner/tournaments/new', data=_tournament_form(name=' '))
        assert b'Tournament name is required!' in response.data

        response = authenticated_owner.post('/owner/tournaments/new', data=_tournament_form(date='next week'))
        assert b'Provide a valid date and time' in response.data


class TestTournamentManagement:
    def test_detail_shows_share_links(self, authenticated_owner, tournament):
        response = authenticated_owner.get(f'/owner/tournament/{tournament.id}')
        assert response.status_code == 200
        assert f'http://localhost/join/{tournament.id}'.encode() in response.data
        assert b'https://wa.me/?text=' in response.data

    def test_other_owner_is_turned_away(self, client, tournament, other_owner):
        login(client, other_owner)
        response = client.get(f'/owner/tournament/{tournament.id}')
        assert response.status_code == 302
        assert response.headers['Location'].endswith('/owner/dashboard')

        response = client.post(f'/owner/tournament/{tournament.id}/complete')
        assert fresh(Tournament, tournament.id).completed_at is None

    def test_missing_tournament(self, authenticated_owner):
        assert authenticated_owner.get('/owner/tournament/999').status_code == 404

    def test_generate_groups(self, authenticated_owner, tournament, players):
        for player in players:
            tournament.join(player)
        db.session.commit()

        response = authenticated_owner.post(
            f'/owner/tournament/{tournament.id}/groups', follow_redirects=True
        )
        assert b'Generated 1 group(s) with 6 match(es).' in response.data

        tournament = fresh(Tournament, tournament.id)
        assert len(tournament.matches) == 6
        assert list(tournament.groups) == ['Group A']

    def test_generate_groups_needs_participants(self, authenticated_owner, tournament):
        response = authenticated_owner.post(
            f'/owner/tournament/{tournament.id}/groups', follow_redirects=True
        )
        assert b'At least two confirmed participants are needed' in response.data

    def test_group_settings(self, authenticated_owner, grouped_tournament):
        response = authenticated_owner.post(
            f'/owner/tournament/{grouped_tournament.id}/group-settings',
            data={'group_name': 'Group A', 'format': '3 games to 11'},
            follow_redirects=True,
        )
        assert b'6 match(es) updated' in response.data
        tournament = fresh(Tournament, grouped_tournament.id)
        assert tournament.group_settings == {'Group A': {'format': '3 games to 11'}}
        assert {m.format for m in tournament.matches} == {'3 games to 11'}

    def test_manual_match(self, authenticated_owner, grouped_tournament, players):
        response = authenticated_owner.post(
            f'/owner/tournament/{grouped_tournament.id}/matches',
            data={'player1_id': players[0].id, 'player2_id': players[3].id},
            follow_redirects=True,
        )
        assert b'Match created: Alice Ace vs Dan Drop' in response.data
        assert Match.query.filter_by(tournament_id=grouped_tournament.id).count() == 7

    def test_manual_match_needs_two_players(self, authenticated_owner, grouped_tournament):
        response = authenticated_owner.post(
            f'/owner/tournament/{grouped_tournament.id}/matches', data={}, follow_redirects=True
        )
        assert b'Select two players for the match.' in response.data

    def test_approve_and_reject(self, authenticated_owner, tournament, players):
        tournament.requires_approval = True
        first = tournament.join(players[0])
        second = tournament.join(players[1])
        db.session.commit()
        first_id, second_id = first.id, second.id

        response = authenticated_owner.post(
            f'/owner/tournament/{tournament.id}/participants/{first_id}',
            data={'action': 'approve'},
            follow_redirects=True,
        )
        assert b'Alice Ace approved.' in response.data

        authenticated_owner.post(
            f'/owner/tournament/{tournament.id}/participants/{second_id}', data={'action': 'reject'}
        )
        tournament = fresh(Tournament, tournament.id)
        assert [(p.name, p.status) for p in tournament.participants] == [('Alice Ace', 'confirmed')]


class TestCompleteTournament:
    def test_complete_refused_with_pending_matches(self, authenticated_owner, grouped_tournament):
        response = authenticated_owner.post(
            f'/owner/tournament/{grouped_tournament.id}/complete', follow_redirects=True
        )
        assert b'6 match(es) still pending. Complete all matches first.' in response.data
        assert fresh(Tournament, grouped_tournament.id).completed_at is None

    def test_complete_updates_ratings(self, authenticated_owner, grouped_tournament, players):
        for match in grouped_tournament.matches:
            match.record_scores([[11, 4], [11, 2]])
        db.session.commit()
        alice_id, dan_id = players[0].id, players[3].id

        response = authenticated_owner.post(
            f'/owner/tournament/{grouped_tournament.id}/complete', follow_redirects=True
        )
        assert b'completed. Ratings updated.' in response.data

        tournament = fresh(Tournament, grouped_tournament.id)
        assert tournament.status == 'completed'
        assert tournament.final_standings[0]['id'] == alice_id

        alice = db.session.get(User, alice_id)
        dan = db.session.get(User, dan_id)
        assert alice.elo > 1500
        assert dan.elo < 1200
        assert alice.tournaments_played == 1
        assert alice.last_elo_change == tournament.elo_changes[str(alice_id)]

        again = authenticated_owner.post(
            f'/owner/tournament/{grouped_tournament.id}/complete', follow_redirects=True
        )
        assert b'Tournament is already completed' in again.data


class TestMembers:
    def test_members_page(self, authenticated_owner, players):
        response = authenticated_owner.get('/owner/members')
        assert response.status_code == 200
        assert b'alice@test.com' in response.data

    def test_disable_and_enable(self, authenticated_owner, player_user):
        user_id = player_user.id
        response = authenticated_owner.post(f'/owner/members/{user_id}/disable', follow_redirects=True)
        assert b'Pat Player has been disabled.' in response.data
        assert fresh(User, user_id).is_disabled is True

        authenticated_owner.post(f'/owner/members/{user_id}/enable')
        assert fresh(User, user_id).is_disabled is False

    def test_remove_member_without_history(self, authenticated_owner):
        user_id = make_user('brief@test.com', 'Brief', 'Visit').id
        authenticated_owner.post(f'/owner/members/{user_id}/remove')
        assert fresh(User, user_id) is None

    def test_remove_member_with_history_refused(self, authenticated_owner, grouped_tournament, players):
        user_id = players[0].id
        response = authenticated_owner.post(f'/owner/members/{user_id}/remove', follow_redirects=True)
        assert b'cannot be removed' in response.data
        assert fresh(User, user_id) is not None

    def test_remove_member_who_set_up_a_match_refused(self, authenticated_owner, players):
        organiser = make_user('nia@test.com', 'Nia', 'Organiser')
        match = IndividualMatch.create(
            '1v1', 'casual', 'best-of-3', 11, [players[0]], [players[1]], created_by=organiser
        )
        db.session.add(match)
        db.session.commit()
        organiser_id, match_id = organiser.id, match.id

        response = authenticated_owner.post(f'/owner/members/{organiser_id}/remove', follow_redirects=True)
        assert b'cannot be removed' in response.data
        assert fresh(User, organiser_id) is not None
        assert fresh(IndividualMatch, match_id).created_by == organiser_id

    def test_owner_cannot_change_own_account(self, authenticated_owner, owner_user):
        response = authenticated_owner.post(f'/owner/members/{owner_user.id}/disable', follow_redirects=True)
        assert b'You cannot change your own account here.' in response.data
        assert fresh(User, owner_user.id).is_disabled is False

    def test_unknown_action(self, authenticated_owner, player_user):
        response = authenticated_owner.post(f'/owner/members/{player_user.id}/promote', follow_redirects=True)
        assert b'Unsupported member action.' in response.data
