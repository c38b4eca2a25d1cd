import json
import math
import uuid
from datetime import datetime

from flask_login import UserMixin
from werkzeug.security import check_password_hash, generate_password_hash

from database import get_db, get_placeholder, insert_returning_id, integrity_errors
from errors import EmailTaken, NameChangeCooldown, NotFound, ValidationError

NAME_CHANGE_COOLDOWN_DAYS = 60
NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 20
PASSWORD_MIN_LENGTH = 6
RECENT_MATCHES_LIMIT = 10

JSON_COLUMNS = ('lifelines', 'owned_frames', 'owned_themes', 'owned_badges', 'recent_matches')

# API field -> column for everything a client may write through PUT /api/user/profile
PROFILE_FIELDS = {
    'xp': 'xp',
    'coins': 'coins',
    'wins': 'wins',
    'losses': 'losses',
    'gamesPlayed': 'games_played',
    'streak': 'streak',
    'lifelines': 'lifelines',
    'recentMatches': 'recent_matches',
    'equippedFrame': 'equipped_frame',
    'equippedTheme': 'equipped_theme',
    'ownedFrames': 'owned_frames',
    'ownedThemes': 'owned_themes',
    'ownedBadges': 'owned_badges',
    'soundEnabled': 'sound_enabled',
    'notificationsEnabled': 'notifications_enabled',
}
COUNTER_FIELDS = ('xp', 'coins', 'wins', 'losses', 'gamesPlayed', 'streak')


# User class for Flask-Login
class User(UserMixin):
    def __init__(self, id, name, email=None, provider='email'):
        self.id = id
        self.name = name
        self.email = email
        self.provider = provider


def _iso(value):
    return value.isoformat() if hasattr(value, 'isoformat') else value


def _parse_timestamp(value):
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def serialize_user(row):
    """Public view of a user row, password hash stripped."""
    row = dict(row)
    for column in JSON_COLUMNS:
        if isinstance(row[column], str):
            row[column] = json.loads(row[column])
    return {
        'id': row['id'],
        'username': row['username'],
        'email': row['email'],
        'name': row['name'],
        'provider': row['provider'],
        'xp': row['xp'],
        'coins': row['coins'],
        'wins': row['wins'],
        'losses': row['losses'],
        'gamesPlayed': row['games_played'],
        'streak': row['streak'],
        'lifelines': row['lifelines'],
        'recentMatches': row['recent_matches'],
        'equippedFrame': row['equipped_frame'],
        'equippedTheme': row['equipped_theme'],
        'ownedFrames': row['owned_frames'],
        'ownedThemes': row['owned_themes'],
        'ownedBadges': row['owned_badges'],
        'soundEnabled': bool(row['sound_enabled']),
        'notificationsEnabled': bool(row['notifications_enabled']),
        'nameChangedAt': _iso(row['name_changed_at']),
        'createdAt': _iso(row['created_at']),
    }


def _fetch_user_row(cur, user_id):
    ph = get_placeholder()
    cur.execute(f'SELECT * FROM users WHERE id = {ph}', (user_id,))
    return cur.fetchone()


def get_user(user_id):
    conn = get_db()
    cur = conn.cursor()
    row = _fetch_user_row(cur, user_id)
    conn.close()
    if not row:
        raise NotFound('User not found')
    return serialize_user(row)


def load_login_user(user_id):
    """Build the Flask-Login user for a session, or None if it no longer exists."""
    try:
        user_id = int(user_id)
    except (TypeError, ValueError):
        return None
    conn = get_db()
    cur = conn.cursor()
    row = _fetch_user_row(cur, user_id)
    conn.close()
    if not row:
        return None
    return User(id=row['id'], name=row['name'], email=row['email'], provider=row['provider'])


def _make_username(email):
    return f"{email.split('@')[0]}_{uuid.uuid4().hex[:6]}"


def register_user(email, password, name):
    email = (email or '').strip().lower()
    name = (name or '').strip()
    if not email or not password or not name:
        raise ValidationError('Email, password and name are required')
    if '@' not in email:
        raise ValidationError('Invalid email address')
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValidationError(f'Password must be at least {PASSWORD_MIN_LENGTH} characters')

    conn = get_db()
    cur = conn.cursor()
    ph = get_placeholder()

    cur.execute(f'SELECT id FROM users WHERE email = {ph}', (email,))
    if cur.fetchone():
        conn.close()
        raise EmailTaken()

    try:
        user_id = insert_returning_id(cur, f'''
            INSERT INTO users (username, email, password, name, provider)
            VALUES ({ph}, {ph}, {ph}, {ph}, 'email')
        ''', (_make_username(email), email, generate_password_hash(password), name))
        conn.commit()
    except integrity_errors():
        conn.rollback()
        conn.close()
        raise EmailTaken()

    row = _fetch_user_row(cur, user_id)
    conn.close()
    return serialize_user(row)


def authenticate(email, password):
    """Return the user for valid credentials, None otherwise."""
    email = (email or '').strip().lower()
    if not email or not password:
        raise ValidationError('Email and password are required')

    conn = get_db()
    cur = conn.cursor()
    ph = get_placeholder()
    cur.execute(f'SELECT * FROM users WHERE email = {ph}', (email,))
    row = cur.fetchone()
    conn.close()

    if not row or not row['password'] or not check_password_hash(row['password'], password):
        return None
    return serialize_user(row)


def get_or_create_user_by_google(google_id, email, name):
    """Get or create user from Google OAuth data."""
    conn = get_db()
    cur = conn.cursor()
    ph = get_placeholder()

    cur.execute(f"SELECT * FROM users WHERE provider = 'google' AND provider_id = {ph}", (google_id,))
    user = cur.fetchone()

    if not user:
        # Check if email already exists (user registered with a password first)
        cur.execute(f'SELECT * FROM users WHERE email = {ph}', (email,))
        existing = cur.fetchone()

        if existing:
            # Link Google account to existing user
            cur.execute(f"UPDATE users SET provider = 'google', provider_id = {ph} WHERE email = {ph}",
                        (google_id, email))
            conn.commit()
            user_id = existing['id']
        else:
            user_id = insert_returning_id(cur, f'''
                INSERT INTO users (username, email, name, provider, provider_id)
                VALUES ({ph}, {ph}, {ph}, 'google', {ph})
            ''', (_make_username(email), email, name, google_id))
            conn.commit()
        user = _fetch_user_row(cur, user_id)

    conn.close()
    return serialize_user(user)


def _validate_profile_value(field, value):
    if field in COUNTER_FIELDS:
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValidationError(f'{field} must be a non-negative integer')
        return value
    if field == 'lifelines':
        if not isinstance(value, dict) or not all(
                isinstance(k, str) and isinstance(v, int) and not isinstance(v, bool) and v >= 0
                for k, v in value.items()):
            raise ValidationError('lifelines must map lifeline ids to non-negative counts')
        return json.dumps(value)
    if field == 'recentMatches':
        if not isinstance(value, list) or not all(isinstance(m, dict) for m in value):
            raise ValidationError('recentMatches must be a list of matches')
        return json.dumps(value[:RECENT_MATCHES_LIMIT])
    if field in ('ownedFrames', 'ownedThemes', 'ownedBadges'):
        if not isinstance(value, list) or not all(isinstance(i, str) for i in value):
            raise ValidationError(f'{field} must be a list of item ids')
        return json.dumps(value)
    if field in ('soundEnabled', 'notificationsEnabled'):
        if not isinstance(value, bool):
            raise ValidationError(f'{field} must be true or false')
        return int(value)
    if not isinstance(value, str) or not value:
        raise ValidationError(f'{field} must be a non-empty string')
    return value


def update_profile(user_id, updates):
    """Write synced profile fields. Unknown fields are ignored."""
    if not isinstance(updates, dict):
        raise ValidationError('Expected a JSON object')

    values = {}
    for field, column in PROFILE_FIELDS.items():
        if field in updates:
            values[column] = _validate_profile_value(field, updates[field])

    merged_wins = updates.get('wins')
    merged_losses = updates.get('losses')
    merged_games = updates.get('gamesPlayed')

    conn = get_db()
    cur = conn.cursor()
    ph = get_placeholder()

    row = _fetch_user_row(cur, user_id)
    if not row:
        conn.close()
        raise NotFound('User not found')

    wins = row['wins'] if merged_wins is None else merged_wins
    losses = row['losses'] if merged_losses is None else merged_losses
    games = row['games_played'] if merged_games is None else merged_games
    if games < wins + losses:
        conn.close()
        raise ValidationError('gamesPlayed cannot be lower than wins plus losses')

    if values:
        assignments = ', '.join(f'{column} = {ph}' for column in values)
        cur.execute(f'UPDATE users SET {assignments} WHERE id = {ph}',
                    tuple(values.values()) + (user_id,))
        conn.commit()
        row = _fetch_user_row(cur, user_id)

    conn.close()
    return serialize_user(row)


def change_name(user_id, name, now=None):
    """Rename a player, at most once per NAME_CHANGE_COOLDOWN_DAYS."""
    name = (name or '').strip()
    if len(name) < NAME_MIN_LENGTH or len(name) > NAME_MAX_LENGTH:
        raise ValidationError(f'Name must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters')

    now = now or datetime.now()
    conn = get_db()
    cur = conn.cursor()
    ph = get_placeholder()

    row = _fetch_user_row(cur, user_id)
    if not row:
        conn.close()
        raise NotFound('User not found')

    last_change = _parse_timestamp(row['name_changed_at'])
    if last_change:
        days_since = (now - last_change).total_seconds() / 86400
        if days_since < NAME_CHANGE_COOLDOWN_DAYS:
            conn.close()
            raise NameChangeCooldown(math.ceil(NAME_CHANGE_COOLDOWN_DAYS - days_since))

    cur.execute(f'UPDATE users SET name = {ph}, name_changed_at = {ph} WHERE id = {ph}',
                (name, now.isoformat(sep=' '), user_id))
    conn.commit()
    row = _fetch_user_row(cur, user_id)
    conn.close()
    return serialize_user(row)
