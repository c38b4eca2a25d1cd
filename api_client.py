"""Thin requests-based client for the Quiz Arena REST API.

Connection problems, timeouts and 5xx answers are treated as retryable no-ops:
the call prints what happened and returns None. 4xx answers raise the
matching error from ``errors``.
"""

import requests

from errors import error_from_response

DEFAULT_TIMEOUT = 10


class QuizArenaClient:
    def __init__(self, base_url, session=None, timeout=DEFAULT_TIMEOUT):
        self.base_url = base_url.rstrip('/')
        # The session keeps the login cookie between calls
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(self, method, path, **kwargs):
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            print(f"API {method} {path} failed: {e}")
            return None

        if response.status_code >= 500:
            print(f"API {method} {path} returned {response.status_code}")
            return None

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code >= 400:
            raise error_from_response(response.status_code, body)
        return body

    # ============ AUTH ============

    def register(self, email, password, name):
        body = self._request('POST', '/api/auth/register',
                             json={'email': email, 'password': password, 'name': name})
        return body and body['user']

    def login(self, email, password):
        body = self._request('POST', '/api/auth/login', json={'email': email, 'password': password})
        return body and body['user']

    def logout(self):
        return self._request('POST', '/api/auth/logout') is not None

    def me(self):
        body = self._request('GET', '/api/auth/me')
        return body and body['user']

    # ============ PROFILE ============

    def update_profile(self, fields):
        body = self._request('PUT', '/api/user/profile', json=fields)
        return body and body['user']

    def change_name(self, name):
        body = self._request('PUT', '/api/user/change-name', json={'name': name})
        return body and body['user']

    # ============ FRIENDS ============

    def search(self, query):
        body = self._request('GET', '/api/friends/search', params={'q': query})
        return body and body['users']

    def send_request(self, friend_id):
        body = self._request('POST', '/api/friends/request', json={'friendId': friend_id})
        return body and body['request']

    def incoming(self):
        body = self._request('GET', '/api/friends/requests/incoming')
        return body and body['requests']

    def outgoing(self):
        body = self._request('GET', '/api/friends/requests/outgoing')
        return body and body['requests']

    def accept(self, request_id):
        body = self._request('POST', f'/api/friends/request/{request_id}/accept')
        return body and body['request']

    def reject(self, request_id):
        body = self._request('POST', f'/api/friends/request/{request_id}/reject')
        return body and body['request']

    def friends(self):
        body = self._request('GET', '/api/friends')
        return body and body['friends']

    def remove_friend(self, friend_id, confirm):
        """Unfriend, but only once ``confirm()`` has returned True."""
        if not confirm():
            return False
        return self._request('DELETE', f'/api/friends/{friend_id}') is not None

    # ============ SUPPORT ============

    def create_ticket(self, subject, message):
        body = self._request('POST', '/api/support/ticket', json={'subject': subject, 'message': message})
        return body and body['ticket']

    def tickets(self):
        body = self._request('GET', '/api/support/tickets')
        return body and body['tickets']
