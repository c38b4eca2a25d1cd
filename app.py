print("=== APP.PY STARTING ===")

import sys
print(f"Python version: {sys.version}")

try:
    from flask import Flask, request, jsonify, session, url_for
    print("Flask imported")
    from flask_login import LoginManager, login_user, logout_user, login_required, current_user
    print("Flask-Login imported")
    import resend
    print("Resend imported")
    from authlib.integrations.flask_client import OAuth
    print("Authlib imported")
    import os
    import time
    import traceback
    from datetime import datetime, timedelta
    from dotenv import load_dotenv
    from werkzeug.exceptions import HTTPException
    print("All imports successful")
except Exception as e:
    print(f"IMPORT ERROR: {e}")
    import traceback
    traceback.print_exc()
    raise

# Load environment variables
load_dotenv()

import accounts
import database
import progression
import social
import support
from errors import InternalError, InvalidRequest, QuizArenaError, Unauthorized

app = Flask(__name__)
app.secret_key = os.environ.get('SECRET_KEY', 'quizarena-dev-secret-key-change-in-production')
app.config['PERMANENT_SESSION_LIFETIME'] = timedelta(days=30)
app.config['SESSION_COOKIE_HTTPONLY'] = True
app.config['SESSION_COOKIE_SAMESITE'] = 'Lax'

# Trust proxy headers for HTTPS when deployed behind a proxy
from werkzeug.middleware.proxy_fix import ProxyFix
app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1)

# Resend setup
resend.api_key = os.environ.get('RESEND_API_KEY')

# Flask-Login setup
login_manager = LoginManager()
login_manager.init_app(app)

# OAuth setup
oauth = OAuth(app)
google = None

GOOGLE_CLIENT_ID = os.environ.get('GOOGLE_CLIENT_ID')
GOOGLE_CLIENT_SECRET = os.environ.get('GOOGLE_CLIENT_SECRET')

print(f"GOOGLE_CLIENT_ID set: {bool(GOOGLE_CLIENT_ID)}")
print(f"GOOGLE_CLIENT_SECRET set: {bool(GOOGLE_CLIENT_SECRET)}")

if GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET:
    google = oauth.register(
        name='google',
        client_id=GOOGLE_CLIENT_ID,
        client_secret=GOOGLE_CLIENT_SECRET,
        server_metadata_url='https://accounts.google.com/.well-known/openid-configuration',
        client_kwargs={'scope': 'openid email profile'}
    )
    print("Google OAuth registered successfully")
else:
    print("WARNING: Google OAuth not configured - missing credentials")


@login_manager.user_loader
def load_user(user_id):
    return accounts.load_login_user(user_id)


@login_manager.unauthorized_handler
def unauthorized():
    # Answer before any lookup so the response says nothing about the target
    return jsonify(Unauthorized().to_dict()), 401


def start_session(user):
    login_user(accounts.User(id=user['id'], name=user['name'], email=user['email'],
                             provider=user['provider']))
    session.permanent = True


def get_json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


# ============ ERROR HANDLERS ============

@app.errorhandler(QuizArenaError)
def handle_quiz_arena_error(e):
    return jsonify(e.to_dict()), e.status_code


@app.errorhandler(Exception)
def handle_unexpected_error(e):
    if isinstance(e, HTTPException):
        return jsonify({'error': e.description}), e.code
    print(f"Unhandled error on {request.method} {request.path}: {e}")
    print(traceback.format_exc())
    return jsonify(InternalError().to_dict()), 500


# ============ AUTH ROUTES ============

@app.route('/api/auth/register', methods=['POST'])
def register():
    data = get_json_body()
    user = accounts.register_user(data.get('email'), data.get('password'), data.get('name'))
    start_session(user)
    return jsonify({'user': user}), 201


@app.route('/api/auth/login', methods=['POST'])
def login():
    data = get_json_body()
    user = accounts.authenticate(data.get('email'), data.get('password'))
    if not user:
        raise Unauthorized('Invalid email or password')
    start_session(user)
    return jsonify({'user': user})


@app.route('/api/auth/logout', methods=['POST'])
def logout():
    """Log out user."""
    logout_user()
    session.clear()
    return jsonify({'success': True})


@app.route('/api/auth/me')
@login_required
def get_current_user():
    """Get current logged in user info."""
    return jsonify({'user': accounts.get_user(current_user.id)})


@app.route('/auth/google')
def google_login():
    """Redirect to Google for OAuth."""
    if not google:
        return jsonify({'error': 'Google sign-in is not configured'}), 404
    redirect_uri = url_for('google_callback', _external=True)
    return google.authorize_redirect(redirect_uri)


@app.route('/auth/google/callback')
def google_callback():
    """Handle Google OAuth callback."""
    if not google:
        return jsonify({'error': 'Google sign-in is not configured'}), 404
    try:
        token = google.authorize_access_token()
        user_info = token.get('userinfo')
    except Exception as e:
        print(f"OAuth error: {e}")
        raise Unauthorized('Google sign-in failed')

    if not user_info:
        raise Unauthorized('Google sign-in failed')

    full_name = user_info.get('name', user_info['email'].split('@')[0])
    first_name = user_info.get('given_name', full_name.split()[0] if full_name else 'Player')
    user = accounts.get_or_create_user_by_google(
        google_id=user_info['sub'],
        email=user_info['email'].lower(),
        name=first_name[:accounts.NAME_MAX_LENGTH],
    )
    start_session(user)
    return jsonify({'user': user})


# ============ PROFILE ROUTES ============

@app.route('/api/user/profile', methods=['PUT'])
@login_required
def update_profile():
    user = accounts.update_profile(current_user.id, request.get_json(silent=True))
    return jsonify({'user': user})


@app.route('/api/user/change-name', methods=['PUT'])
@login_required
def change_name():
    data = get_json_body()
    user = accounts.change_name(current_user.id, data.get('name'))
    return jsonify({'user': user})


# ============ FRIENDS API ROUTES ============

@app.route('/api/friends/search', methods=['GET'])
@login_required
def api_search_users():
    users = social.search_users(request.args.get('q', ''), current_user.id)
    return jsonify({'users': users})


@app.route('/api/friends/request', methods=['POST'])
@login_required
def api_send_friend_request():
    friend_id = get_json_body().get('friendId')
    if isinstance(friend_id, str) and friend_id.isdigit():
        friend_id = int(friend_id)
    if not isinstance(friend_id, int) or isinstance(friend_id, bool):
        raise InvalidRequest()

    friend_request = social.send_request(current_user.id, friend_id)
    return jsonify({'request': friend_request}), 201


@app.route('/api/friends/requests/incoming', methods=['GET'])
@login_required
def api_get_incoming():
    return jsonify({'requests': social.get_incoming_requests(current_user.id)})


@app.route('/api/friends/requests/outgoing', methods=['GET'])
@login_required
def api_get_outgoing():
    return jsonify({'requests': social.get_outgoing_requests(current_user.id)})


@app.route('/api/friends/request/<int:request_id>/accept', methods=['POST'])
@login_required
def api_accept_friend(request_id):
    friend_request = social.accept_request(request_id, current_user.id)
    return jsonify({'success': True, 'request': friend_request})


@app.route('/api/friends/request/<int:request_id>/reject', methods=['POST'])
@login_required
def api_reject_friend(request_id):
    friend_request = social.reject_request(request_id, current_user.id)
    return jsonify({'success': True, 'request': friend_request})


@app.route('/api/friends', methods=['GET'])
@login_required
def api_get_friends():
    return jsonify({'friends': social.get_friends(current_user.id)})


@app.route('/api/friends/<int:friend_id>', methods=['DELETE'])
@login_required
def api_remove_friend(friend_id):
    social.remove_friend(current_user.id, friend_id)
    return jsonify({'success': True})


# ============ SUPPORT ============

@app.route('/api/support/ticket', methods=['POST'])
@login_required
def api_create_ticket():
    data = get_json_body()
    ticket = support.create_ticket(current_user.id, data.get('subject'), data.get('message'))
    support.notify_support(ticket, current_user.name)
    return jsonify({'ticket': ticket}), 201


@app.route('/api/support/tickets', methods=['GET'])
@login_required
def api_get_tickets():
    return jsonify({'tickets': support.get_tickets(current_user.id)})


# ============ RANKS & LEADERBOARD API ============

@app.route('/api/ranks', methods=['GET'])
@login_required
def api_ranks():
    user = accounts.get_user(current_user.id)
    tiers = []
    floor = 0
    for tier in progression.RANK_TIERS:
        span = tier['levels'] * progression.XP_PER_LEVEL
        tiers.append(dict(tier, minXP=floor, maxXP=floor + span))
        floor += span
    return jsonify({
        'tiers': tiers,
        'rank': progression.get_rank_from_xp(user['xp']),
        'progress': progression.rank_progress(user['xp']),
    })


@app.route('/api/leaderboard', methods=['GET'])
@login_required
def api_leaderboard():
    user = accounts.get_user(current_user.id)
    return jsonify({
        'leaderboard': progression.generate_leaderboard(user['name'], user['xp']),
        'season': {
            'id': progression.CURRENT_SEASON['id'],
            'name': progression.CURRENT_SEASON['name'],
            'daysLeft': progression.season_days_left(),
        },
    })


@app.route('/api/daily-rewards', methods=['GET'])
def api_daily_rewards():
    return jsonify({'rewards': progression.DAILY_REWARDS})


@app.route('/api/health')
def health_check():
    """Health check endpoint with basic metrics for monitoring."""
    start = time.time()

    try:
        conn = database.get_db()
        cur = conn.cursor()

        cur.execute('SELECT COUNT(*) as count FROM users')
        user_count = cur.fetchone()['count']

        cur.execute("SELECT COUNT(*) as count FROM friend_requests WHERE status = 'pending'")
        pending_requests = cur.fetchone()['count']

        cur.execute("SELECT COUNT(*) as count FROM support_tickets WHERE status = 'open'")
        open_tickets = cur.fetchone()['count']

        conn.close()

        db_time = time.time() - start

        status = 'healthy'
        warnings = []

        if db_time > 1.0:
            status = 'degraded'
            warnings.append('Database queries slow (>1s)')
        elif db_time > 0.5:
            warnings.append('Database queries slightly slow (>500ms)')

        return jsonify({
            'status': status,
            'timestamp': datetime.now().isoformat(),
            'metrics': {
                'total_users': user_count,
                'pending_friend_requests': pending_requests,
                'open_support_tickets': open_tickets,
                'db_query_time_ms': round(db_time * 1000, 2)
            },
            'warnings': warnings if warnings else None,
            'database': 'postgresql' if database.USE_POSTGRES else 'sqlite'
        })

    except Exception as e:
        print(f"Health check error: {e}")
        return jsonify({
            'status': 'unhealthy',
            'error': 'Database unavailable',
            'timestamp': datetime.now().isoformat()
        }), 500


# ============ MAIN ============

# Initialize database on app load (works with gunicorn)
try:
    print("Starting database initialization...")
    print(f"USE_POSTGRES: {database.USE_POSTGRES}")
    print(f"DATABASE_URL set: {bool(database.DATABASE_URL)}")
    database.init_db()
    print("Database initialized successfully!")
except Exception as e:
    print(f"ERROR initializing database: {e}")
    import traceback
    traceback.print_exc()

if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5001))
    debug = os.environ.get('FLASK_ENV', 'development') == 'development'
    app.run(debug=debug, port=port, host='0.0.0.0')
