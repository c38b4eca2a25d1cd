"""
Tests for the REST endpoints through the Flask test client.
"""

from datetime import datetime, timedelta

import accounts
from errors import NameChangeCooldown
from tests.conftest import register


# ============================================================================
# AUTH
# ============================================================================


class TestAuth:

    def test_register_returns_user_without_password(self, client):
        user = register(client, 'Alice@Example.com', 'Alice')

        assert user['email'] == 'alice@example.com'
        assert user['coins'] == 500
        assert user['lifelines'] == {'fifty_fifty': 2, 'time_freeze': 1, 'shield': 1}
        assert 'password' not in user

    def test_register_missing_fields(self, client):
        response = client.post('/api/auth/register', json={'email': 'a@example.com'})

        assert response.status_code == 400
        assert 'error' in response.get_json()

    def test_register_short_password(self, client):
        response = client.post('/api/auth/register', json={
            'email': 'a@example.com', 'password': '123', 'name': 'A',
        })

        assert response.status_code == 400

    def test_register_duplicate_email(self, client):
        register(client, 'alice@example.com', 'Alice')

        response = client.post('/api/auth/register', json={
            'email': 'ALICE@example.com', 'password': 'secret123', 'name': 'Other',
        })

        assert response.status_code == 409

    def test_login_and_me(self, app):
        register(app.test_client(), 'alice@example.com', 'Alice')
        client = app.test_client()

        response = client.post('/api/auth/login', json={'email': 'alice@example.com', 'password': 'secret123'})
        me = client.get('/api/auth/me')

        assert response.status_code == 200
        assert me.get_json()['user']['name'] == 'Alice'

    def test_login_bad_password(self, client):
        register(client, 'alice@example.com', 'Alice')

        response = client.post('/api/auth/login', json={'email': 'alice@example.com', 'password': 'wrong'})

        assert response.status_code == 401

    def test_me_requires_login(self, client):
        response = client.get('/api/auth/me')

        assert response.status_code == 401
        assert response.get_json() == {'error': 'Not logged in'}

    def test_logout(self, alice):
        client, _ = alice

        client.post('/api/auth/logout')

        assert client.get('/api/auth/me').status_code == 401


# ============================================================================
# PROFILE
# ============================================================================


class TestProfile:

    def test_update_progression_fields(self, alice):
        client, _ = alice

        response = client.put('/api/user/profile', json={
            'xp': 1200, 'coins': 80, 'wins': 3, 'losses': 2, 'gamesPlayed': 6,
            'lifelines': {'shield': 4}, 'recentMatches': [{'id': 'm_1', 'position': 1}],
            'email': 'ignored@example.com',
        })
        user = response.get_json()['user']

        assert response.status_code == 200
        assert user['xp'] == 1200
        assert user['lifelines'] == {'shield': 4}
        assert user['recentMatches'] == [{'id': 'm_1', 'position': 1}]
        assert user['email'] == 'alice@example.com'

    def test_update_rejects_negative_counters(self, alice):
        client, _ = alice

        response = client.put('/api/user/profile', json={'coins': -5})

        assert response.status_code == 400

    def test_update_rejects_games_below_wins_plus_losses(self, alice):
        client, _ = alice

        response = client.put('/api/user/profile', json={'wins': 3, 'losses': 3, 'gamesPlayed': 5})

        assert response.status_code == 400

    def test_update_caps_recent_matches(self, alice):
        client, _ = alice
        matches = [{'id': f'm_{i}'} for i in range(15)]

        user = client.put('/api/user/profile', json={'recentMatches': matches}).get_json()['user']

        assert len(user['recentMatches']) == 10


class TestChangeName:

    def test_first_change_succeeds(self, alice):
        client, _ = alice

        response = client.put('/api/user/change-name', json={'name': '  Alicia  '})

        assert response.status_code == 200
        assert response.get_json()['user']['name'] == 'Alicia'

    def test_second_change_hits_cooldown(self, alice):
        client, _ = alice
        client.put('/api/user/change-name', json={'name': 'Alicia'})

        response = client.put('/api/user/change-name', json={'name': 'Ally'})

        assert response.status_code == 403
        assert response.get_json()['daysLeft'] == 60

    def test_name_length_is_checked(self, alice):
        client, _ = alice

        assert client.put('/api/user/change-name', json={'name': 'A'}).status_code == 400
        assert client.put('/api/user/change-name', json={'name': 'A' * 21}).status_code == 400

    def test_days_left_rounds_up(self, alice):
        _, user = alice
        start = datetime(2026, 1, 1, 12, 0)
        accounts.change_name(user['id'], 'Alicia', now=start)

        try:
            accounts.change_name(user['id'], 'Ally', now=start + timedelta(days=10, hours=1))
        except NameChangeCooldown as e:
            assert e.days_left == 50
        else:
            raise AssertionError('cooldown not enforced')

    def test_change_allowed_after_cooldown(self, alice):
        _, user = alice
        start = datetime(2026, 1, 1, 12, 0)
        accounts.change_name(user['id'], 'Alicia', now=start)

        renamed = accounts.change_name(user['id'], 'Ally', now=start + timedelta(days=60))

        assert renamed['name'] == 'Ally'


# ============================================================================
# FRIENDS
# ============================================================================


class TestFriendsApi:

    def test_full_request_flow(self, alice, bob):
        alice_client, alice_user = alice
        bob_client, bob_user = bob

        sent = alice_client.post('/api/friends/request', json={'friendId': bob_user['id']})
        incoming = bob_client.get('/api/friends/requests/incoming').get_json()['requests']
        accepted = bob_client.post(f"/api/friends/request/{incoming[0]['id']}/accept")
        friends = alice_client.get('/api/friends').get_json()['friends']

        assert sent.status_code == 201
        assert incoming[0]['senderName'] == 'Alice'
        assert accepted.status_code == 200
        assert accepted.get_json()['success'] is True
        assert [f['name'] for f in friends] == ['Bob']

    def test_request_errors(self, alice, bob):
        alice_client, alice_user = alice
        _, bob_user = bob

        assert alice_client.post('/api/friends/request', json={}).status_code == 400
        assert alice_client.post('/api/friends/request', json={'friendId': alice_user['id']}).status_code == 400
        assert alice_client.post('/api/friends/request', json={'friendId': 9999}).status_code == 404

        alice_client.post('/api/friends/request', json={'friendId': bob_user['id']})
        duplicate = alice_client.post('/api/friends/request', json={'friendId': str(bob_user['id'])})
        assert duplicate.status_code == 409

    def test_accept_someone_elses_request(self, alice, bob):
        alice_client, _ = alice
        _, bob_user = bob
        request_id = alice_client.post('/api/friends/request', json={'friendId': bob_user['id']}).get_json()['request']['id']

        response = alice_client.post(f'/api/friends/request/{request_id}/accept')

        assert response.status_code == 404

    def test_reject_and_outgoing(self, alice, bob):
        alice_client, _ = alice
        bob_client, bob_user = bob
        request_id = alice_client.post('/api/friends/request', json={'friendId': bob_user['id']}).get_json()['request']['id']

        assert len(alice_client.get('/api/friends/requests/outgoing').get_json()['requests']) == 1
        assert bob_client.post(f'/api/friends/request/{request_id}/reject').status_code == 200
        assert alice_client.get('/api/friends/requests/outgoing').get_json()['requests'] == []

    def test_search_and_remove(self, alice, bob):
        alice_client, alice_user = alice
        bob_client, bob_user = bob
        request_id = alice_client.post('/api/friends/request', json={'friendId': bob_user['id']}).get_json()['request']['id']
        bob_client.post(f'/api/friends/request/{request_id}/accept')

        found = alice_client.get('/api/friends/search?q=bob').get_json()['users']
        removed = bob_client.delete(f"/api/friends/{alice_user['id']}")

        assert [u['id'] for u in found] == [bob_user['id']]
        assert removed.status_code == 200
        assert alice_client.get('/api/friends').get_json()['friends'] == []

    def test_friend_routes_require_login(self, client):
        assert client.get('/api/friends').status_code == 401
        assert client.post('/api/friends/request', json={'friendId': 1}).status_code == 401
        assert client.post('/api/friends/request/1/accept').status_code == 401


# ============================================================================
# SUPPORT, RANKS, LEADERBOARD, HEALTH
# ============================================================================


class TestSupport:

    def test_create_and_list_tickets(self, alice):
        client, _ = alice

        created = client.post('/api/support/ticket', json={'subject': 'Bug', 'message': 'Timer froze'})
        tickets = client.get('/api/support/tickets').get_json()['tickets']

        assert created.status_code == 201
        assert created.get_json()['ticket']['status'] == 'open'
        assert [t['subject'] for t in tickets] == ['Bug']

    def test_ticket_needs_subject_and_message(self, alice):
        client, _ = alice

        response = client.post('/api/support/ticket', json={'subject': 'Bug'})

        assert response.status_code == 400


class TestRanksAndLeaderboard:

    def test_ranks(self, alice):
        client, _ = alice

        body = client.get('/api/ranks').get_json()

        assert [t['tier'] for t in body['tiers']] == [
            'beginner', 'intermediate', 'smart', 'expert', 'genius', 'mastermind',
        ]
        assert body['tiers'][1]['minXP'] == 1000
        assert body['rank']['label'] == 'Beginner 1'

    def test_leaderboard_includes_player(self, alice):
        client, _ = alice

        board = client.get('/api/leaderboard').get_json()['leaderboard']

        assert len(board) == 20
        assert [e['name'] for e in board if e['is_self']] == ['Alice']

    def test_daily_rewards(self, client):
        rewards = client.get('/api/daily-rewards').get_json()['rewards']

        assert len(rewards) == 7
        assert rewards[6]['bonus'] is True

    def test_health(self, alice):
        client, _ = alice

        body = client.get('/api/health').get_json()

        assert body['status'] in ('healthy', 'degraded')
        assert body['metrics']['total_users'] == 1
        assert body['database'] == 'sqlite'
