"""Friend requests and the friendship graph.

A request moves pending -> accepted or pending -> rejected and is kept as
history afterwards. Accepting writes two directed friendship rows so the
relation reads the same from either side.
"""

from database import (USE_POSTGRES, get_db, get_placeholder, insert_returning_id,
                      integrity_errors, transaction)
from errors import AlreadyFriends, DuplicatePending, InvalidRequest, NotFound

SEARCH_MIN_LENGTH = 2
SEARCH_LIMIT = 20


def _iso(value):
    return value.isoformat() if hasattr(value, 'isoformat') else value


def _request_dict(row):
    return {
        'id': row['id'],
        'senderId': row['sender_id'],
        'receiverId': row['receiver_id'],
        'status': row['status'],
        'createdAt': _iso(row['created_at']),
    }


def _escape_like(query):
    return query.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')


def search_users(query, user_id):
    """Find other players by name or email, case-insensitive substring match."""
    query = (query or '').strip()
    if len(query) < SEARCH_MIN_LENGTH:
        return []

    ph = get_placeholder()
    pattern = f'%{_escape_like(query.lower())}%'
    conn = get_db()
    cur = conn.cursor()
    cur.execute(f'''
        SELECT id, name, xp, equipped_frame
        FROM users
        WHERE id != {ph}
        AND (LOWER(name) LIKE {ph} ESCAPE '\\' OR LOWER(email) LIKE {ph} ESCAPE '\\')
        ORDER BY id
        LIMIT {SEARCH_LIMIT}
    ''', (user_id, pattern, pattern))
    users = [{
        'id': row['id'],
        'name': row['name'],
        'xp': row['xp'],
        'equippedFrame': row['equipped_frame'],
    } for row in cur.fetchall()]
    conn.close()
    return users


def send_request(sender_id, receiver_id):
    """Create a pending request after checking the pair is free.

    The checks and the insert share one transaction so two near-simultaneous
    requests between the same pair cannot both pass.
    """
    if not receiver_id or sender_id == receiver_id:
        raise InvalidRequest()

    ph = get_placeholder()
    try:
        with transaction() as conn:
            cur = conn.cursor()
            lock = ' FOR UPDATE' if USE_POSTGRES else ''
            cur.execute(f'''
                SELECT id FROM users WHERE id IN ({ph}, {ph}) ORDER BY id{lock}
            ''', (sender_id, receiver_id))
            if len(cur.fetchall()) < 2:
                raise NotFound('User not found')

            cur.execute(f'''
                SELECT id FROM friendships
                WHERE (user_id = {ph} AND friend_id = {ph})
                OR (user_id = {ph} AND friend_id = {ph})
            ''', (sender_id, receiver_id, receiver_id, sender_id))
            if cur.fetchone():
                raise AlreadyFriends()

            cur.execute(f'''
                SELECT id FROM friend_requests
                WHERE ((sender_id = {ph} AND receiver_id = {ph})
                OR (sender_id = {ph} AND receiver_id = {ph}))
                AND status = 'pending'
            ''', (sender_id, receiver_id, receiver_id, sender_id))
            if cur.fetchone():
                raise DuplicatePending()

            request_id = insert_returning_id(cur, f'''
                INSERT INTO friend_requests (sender_id, receiver_id, status)
                VALUES ({ph}, {ph}, 'pending')
            ''', (sender_id, receiver_id))

            cur.execute(f'SELECT * FROM friend_requests WHERE id = {ph}', (request_id,))
            request = _request_dict(cur.fetchone())
    except integrity_errors():
        # Lost the race to the pending-pair unique index
        raise DuplicatePending()

    return request


def _pending_request_for(cur, request_id, user_id):
    ph = get_placeholder()
    lock = ' FOR UPDATE' if USE_POSTGRES else ''
    cur.execute(f'''
        SELECT * FROM friend_requests
        WHERE id = {ph} AND receiver_id = {ph} AND status = 'pending'{lock}
    ''', (request_id, user_id))
    request = cur.fetchone()
    if not request:
        raise NotFound('Request not found')
    return request


def accept_request(request_id, user_id):
    """Accept a pending request addressed to user_id.

    The status change and both friendship rows commit together or not at all.
    """
    ph = get_placeholder()
    try:
        with transaction() as conn:
            cur = conn.cursor()
            request = _pending_request_for(cur, request_id, user_id)

            cur.execute(f'''
                UPDATE friend_requests SET status = 'accepted'
                WHERE id = {ph} AND status = 'pending'
            ''', (request_id,))
            if cur.rowcount != 1:
                raise NotFound('Request not found')

            for owner, friend in ((request['sender_id'], request['receiver_id']),
                                  (request['receiver_id'], request['sender_id'])):
                cur.execute(f'''
                    INSERT INTO friendships (user_id, friend_id)
                    VALUES ({ph}, {ph})
                ''', (owner, friend))
    except integrity_errors():
        raise AlreadyFriends()

    accepted = dict(request)
    accepted['status'] = 'accepted'
    return _request_dict(accepted)


def reject_request(request_id, user_id):
    ph = get_placeholder()
    with transaction() as conn:
        cur = conn.cursor()
        request = _pending_request_for(cur, request_id, user_id)
        cur.execute(f'''
            UPDATE friend_requests SET status = 'rejected'
            WHERE id = {ph} AND status = 'pending'
        ''', (request_id,))
        if cur.rowcount != 1:
            raise NotFound('Request not found')

    rejected = dict(request)
    rejected['status'] = 'rejected'
    return _request_dict(rejected)


def get_friends(user_id):
    """Get list of user's friends."""
    conn = get_db()
    cur = conn.cursor()
    ph = get_placeholder()

    cur.execute(f'''
        SELECT u.id, u.name, u.xp, u.equipped_frame, u.games_played, u.wins
        FROM friendships f
        JOIN users u ON f.friend_id = u.id
        WHERE f.user_id = {ph}
        ORDER BY f.created_at, f.id
    ''', (user_id,))

    friends = [{
        'id': row['id'],
        'name': row['name'],
        'xp': row['xp'],
        'equippedFrame': row['equipped_frame'],
        'gamesPlayed': row['games_played'],
        'wins': row['wins'],
    } for row in cur.fetchall()]
    conn.close()
    return friends


def remove_friend(user_id, friend_id):
    """Delete both directions of a friendship. Removing a non-friend is a no-op."""
    ph = get_placeholder()
    with transaction() as conn:
        cur = conn.cursor()
        cur.execute(f'''
            DELETE FROM friendships
            WHERE (user_id = {ph} AND friend_id = {ph})
            OR (user_id = {ph} AND friend_id = {ph})
        ''', (user_id, friend_id, friend_id, user_id))


def get_incoming_requests(user_id):
    """Get pending friend requests sent to user."""
    conn = get_db()
    cur = conn.cursor()
    ph = get_placeholder()

    cur.execute(f'''
        SELECT r.id, r.sender_id, r.status, r.created_at,
               u.name AS sender_name, u.xp AS sender_xp, u.equipped_frame AS sender_frame
        FROM friend_requests r
        JOIN users u ON r.sender_id = u.id
        WHERE r.receiver_id = {ph} AND r.status = 'pending'
        ORDER BY r.created_at DESC, r.id DESC
    ''', (user_id,))

    requests = [{
        'id': row['id'],
        'senderId': row['sender_id'],
        'status': row['status'],
        'createdAt': _iso(row['created_at']),
        'senderName': row['sender_name'],
        'senderXp': row['sender_xp'],
        'senderFrame': row['sender_frame'],
    } for row in cur.fetchall()]
    conn.close()
    return requests


def get_outgoing_requests(user_id):
    """Get pending friend requests user has sent."""
    conn = get_db()
    cur = conn.cursor()
    ph = get_placeholder()

    cur.execute(f'''
        SELECT r.id, r.receiver_id, r.status, r.created_at,
               u.name AS receiver_name, u.xp AS receiver_xp
        FROM friend_requests r
        JOIN users u ON r.receiver_id = u.id
        WHERE r.sender_id = {ph} AND r.status = 'pending'
        ORDER BY r.created_at DESC, r.id DESC
    ''', (user_id,))

    requests = [{
        'id': row['id'],
        'receiverId': row['receiver_id'],
        'status': row['status'],
        'createdAt': _iso(row['created_at']),
        'receiverName': row['receiver_name'],
        'receiverXp': row['receiver_xp'],
    } for row in cur.fetchall()]
    conn.close()
    return requests
