"""
Integration tests for score entry on tournament and individual matches
"""
from models import db, IndividualMatch, Match, User
from tests.conftest import fresh, login, make_user


def _score_form(*games):
    data = {}
    for number, (first, second) in enumerate(games, start=1):
        data[f'game{number}_side1'] = str(first)
        data[f'game{number}_side2'] = str(second)
    return data


class TestTournamentMatchScores:
    def test_detail_page_shows_every_game_row(self, client, grouped_tournament, players):
        match = grouped_tournament.matches[0]
        login(client, players[0])
        response = client.get(f'/matches/{match.id}')
        assert response.status_code == 200
        assert b'Alice Ace vs Bob Baseline' in response.data
        assert b'game3_side1' in response.data

    def test_player_records_result(self, client, grouped_tournament, players):
        match_id = grouped_tournament.matches[0].id
        login(client, players[1])
        response = client.post(
            f'/matches/{match_id}/score', data=_score_form((11, 9), (7, 11), (11, 13)), follow_redirects=True
        )
        assert b'Result saved: Bob Baseline wins' in response.data

        match = fresh(Match, match_id)
        assert match.status == 'completed'
        assert match.winner_id == players[1].id
        assert match.scores == [[11, 9], [7, 11], [11, 13]]

    def test_owner_records_result(self, authenticated_owner, grouped_tournament):
        match_id = grouped_tournament.matches[0].id
        authenticated_owner.post(f'/matches/{match_id}/score', data=_score_form((11, 2), (11, 3)))
        assert fresh(Match, match_id).status == 'completed'

    def test_outsider_forbidden(self, authenticated_player, grouped_tournament):
        match_id = grouped_tournament.matches[0].id
        response = authenticated_player.post(f'/matches/{match_id}/score', data=_score_form((11, 2), (11, 3)))
        assert response.status_code == 403
        assert fresh(Match, match_id).status == 'pending'

    def test_invalid_scores_flashed(self, client, grouped_tournament, players):
        match_id = grouped_tournament.matches[0].id
        login(client, players[0])
        response = client.post(
            f'/matches/{match_id}/score', data=_score_form((11, 11), (11, 3)), follow_redirects=True
        )
        assert b'Game 1 cannot end in a tie.' in response.data
        assert fresh(Match, match_id).status == 'pending'

    def test_undecided_scores_flashed(self, client, grouped_tournament, players):
        match_id = grouped_tournament.matches[0].id
        login(client, players[0])
        response = client.post(f'/matches/{match_id}/score', data=_score_form((11, 4)), follow_redirects=True)
        assert b'These scores do not decide a winner.' in response.data

    def test_scores_locked_after_completion(self, authenticated_owner, grouped_tournament):
        for match in grouped_tournament.matches:
            match.record_scores([[11, 4], [11, 2]])
        grouped_tournament.complete()
        db.session.commit()
        match_id = grouped_tournament.matches[0].id

        response = authenticated_owner.post(
            f'/matches/{match_id}/score', data=_score_form((2, 11), (2, 11)), follow_redirects=True
        )
        assert b'Scores cannot change after the tournament is completed' in response.data
        assert fresh(Match, match_id).scores == [[11, 4], [11, 2]]


class TestIndividualMatches:
    def _create(self, creator, team1, team2, match_type='1v1', mode='ranked', fmt='best-of-3'):
        match = IndividualMatch.create(match_type, mode, fmt, 11, team1, team2, created_by=creator)
        db.session.add(match)
        db.session.commit()
        return match

    def test_new_match_form(self, authenticated_player, players):
        response = authenticated_player.get('/matches/individual/new')
        assert response.status_code == 200
        assert b'Alice Ace (1500)' in response.data
        assert b'best-of-5' in response.data

    def test_create_singles(self, authenticated_player, player_user, players):
        response = authenticated_player.post('/matches/individual/new', data={
            'match_type': '1v1',
            'match_mode': 'ranked',
            'format': 'best-of-3',
            'points_per_game': '11',
            'team1': [str(player_user.id), ''],
            'team2': [str(players[0].id), ''],
        })
        assert response.status_code == 302

        db.session.expire_all()
        match = IndividualMatch.query.one()
        assert response.headers['Location'].endswith(f'/matches/individual/{match.id}')
        assert match.created_by == player_user.id
        assert match.team1_avg_elo == 1200
        assert match.team2_avg_elo == 1500
        assert match.status == 'pending'

    def test_create_doubles(self, authenticated_player, players):
        authenticated_player.post('/matches/individual/new', data={
            'match_type': '2v2',
            'match_mode': 'casual',
            'format': 'best-of-1',
            'points_per_game': '15',
            'team1': [str(players[0].id), str(players[3].id)],
            'team2': [str(players[1].id), str(players[2].id)],
        })
        db.session.expire_all()
        match = IndividualMatch.query.one()
        assert match.match_type == '2v2'
        assert match.points_per_game == 15
        assert match.team1_avg_elo == 1350

    def test_create_rejects_uneven_sides(self, authenticated_player, players):
        response = authenticated_player.post('/matches/individual/new', data={
            'match_type': '2v2',
            'match_mode': 'ranked',
            'format': 'best-of-3',
            'points_per_game': '11',
            'team1': [str(players[0].id), str(players[1].id)],
            'team2': [str(players[2].id), ''],
        })
        assert response.status_code == 200
        assert b'Each side needs exactly 2 player(s) for a 2v2 match' in response.data
        assert IndividualMatch.query.count() == 0

    def test_partial_then_final_scores(self, authenticated_player, player_user, players, owner_user):
        match_id = self._create(owner_user, [player_user], [players[3]]).id
        user_id, rival_id = player_user.id, players[3].id

        response = authenticated_player.post(
            f'/matches/individual/{match_id}/score', data=_score_form((11, 9)), follow_redirects=True
        )
        assert b'Scores saved. Match in progress.' in response.data
        assert fresh(IndividualMatch, match_id).status == 'in-progress'

        response = authenticated_player.post(
            f'/matches/individual/{match_id}/score',
            data=_score_form((11, 9), (11, 6)),
            follow_redirects=True,
        )
        assert b'Match completed: Pat Player wins (11-9, 11-6).' in response.data

        match = fresh(IndividualMatch, match_id)
        assert match.status == 'completed'
        assert match.winning_side == 1
        assert db.session.get(User, user_id).elo == 1220
        assert db.session.get(User, rival_id).elo == 1180

    def test_outsider_cannot_score(self, client, owner_user, players):
        match_id = self._create(owner_user, [players[0]], [players[1]]).id
        outsider = make_user('nosy@test.com', 'Nosy', 'Neighbour')
        login(client, outsider)

        response = client.post(f'/matches/individual/{match_id}/score', data=_score_form((11, 1), (11, 1)))
        assert response.status_code == 403

    def test_cancel(self, client, owner_user, players):
        match_id = self._create(owner_user, [players[0]], [players[1]]).id
        login(client, players[1])

        response = client.post(f'/matches/individual/{match_id}/cancel', follow_redirects=True)
        assert b'Match cancelled.' in response.data
        assert fresh(IndividualMatch, match_id).status == 'cancelled'

        response = client.post(f'/matches/individual/{match_id}/cancel', follow_redirects=True)
        assert b'Match is already cancelled' in response.data

    def test_list_page(self, authenticated_player, player_user, players, owner_user):
        self._create(owner_user, [player_user], [players[0]])
        self._create(owner_user, [players[1]], [players[2]], mode='casual')

        response = authenticated_player.get('/matches/individual')
        assert response.status_code == 200
        assert b'Pat Player vs Alice Ace' in response.data
        assert b'Bob Baseline vs Cara Court' in response.data

    def test_detail_page(self, authenticated_player, player_user, players, owner_user):
        match_id = self._create(owner_user, [player_user], [players[0]]).id
        response = authenticated_player.get(f'/matches/individual/{match_id}')
        assert response.status_code == 200
        assert b'Team averages: 1200 vs 1500' in response.data
        assert b'Set up by Olive Owner' in response.data
        assert b'Cancel match' in response.data

    def test_score_form_adds_decider_after_split_games(self, authenticated_player, player_user, players, owner_user):
        match_id = self._create(owner_user, [player_user], [players[0]]).id
        response = authenticated_player.get(f'/matches/individual/{match_id}')
        assert b'game2_side1' in response.data
        assert b'game3_side1' not in response.data

        authenticated_player.post(f'/matches/individual/{match_id}/score', data=_score_form((11, 7), (7, 11)))
        response = authenticated_player.get(f'/matches/individual/{match_id}')
        assert b'Status: in-progress' in response.data
        assert b'game3_side1' in response.data
