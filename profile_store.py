"""Client-side player profile.

The profile is owned by a ProfileStore and only changes through command
objects passed to ``dispatch``. Each applied command bumps ``version``, writes
the local cache and queues a best-effort push to the server. A failed push
never undoes the local change.
"""

import copy
import json
import os
import tempfile
import threading
from collections import namedtuple
from concurrent.futures import ThreadPoolExecutor
from datetime import date

import progression
from errors import QuizArenaError

RECENT_MATCHES_LIMIT = 10

# Fields the server persists for a player
SYNC_FIELDS = ('xp', 'coins', 'wins', 'losses', 'gamesPlayed', 'streak', 'lifelines', 'recentMatches')

# Fields UpdateProfile is allowed to merge in
UPDATABLE_FIELDS = ('id', 'name') + SYNC_FIELDS

CommandResult = namedtuple('CommandResult', ['ok', 'reason', 'profile', 'data'])


def default_profile():
    return {
        'id': None,
        'name': 'Player',
        'xp': 0,
        'coins': progression.STARTING_COINS,
        'wins': 0,
        'losses': 0,
        'gamesPlayed': 0,
        'streak': 0,
        'lifelines': dict(progression.STARTING_LIFELINES),
        'recentMatches': [],
        'dailyReward': {'lastClaim': None, 'streak': 0},
        'version': 0,
    }


class CommandRejected(Exception):
    def __init__(self, reason):
        super().__init__(reason)
        self.reason = reason


# ============ COMMANDS ============

class BuyLifeline:
    sync = True

    def __init__(self, lifeline_id):
        self.lifeline_id = lifeline_id

    def apply(self, profile):
        lifeline = progression.LIFELINES.get(self.lifeline_id)
        if not lifeline:
            raise CommandRejected('unknown_lifeline')
        if profile['coins'] < lifeline['price']:
            raise CommandRejected('insufficient_coins')
        profile['coins'] -= lifeline['price']
        count = profile['lifelines'].get(self.lifeline_id, 0) + 1
        profile['lifelines'][self.lifeline_id] = count
        return {'lifeline': self.lifeline_id, 'count': count}


class UseLifeline:
    sync = True

    def __init__(self, lifeline_id):
        self.lifeline_id = lifeline_id

    def apply(self, profile):
        count = profile['lifelines'].get(self.lifeline_id, 0)
        if count <= 0:
            raise CommandRejected('no_lifeline')
        profile['lifelines'][self.lifeline_id] = count - 1
        return {'lifeline': self.lifeline_id, 'count': count - 1}


class AddXP:
    sync = True

    def __init__(self, amount):
        self.amount = amount

    def apply(self, profile):
        if profile['xp'] + self.amount < 0:
            raise CommandRejected('negative_xp')
        old_rank = progression.get_rank_from_xp(profile['xp'])
        profile['xp'] += self.amount
        return _rank_change(old_rank, profile['xp'])


class AddCoins:
    sync = True

    def __init__(self, amount):
        self.amount = amount

    def apply(self, profile):
        if profile['coins'] + self.amount < 0:
            raise CommandRejected('insufficient_coins')
        profile['coins'] += self.amount
        return {'coins': profile['coins']}


class RecordMatch:
    """Fold a finished match into the profile.

    First place is a win in every mode. Classic counts a loss below third,
    head-to-head modes count any other finish as a loss. The streak grows on
    every top-3 finish and resets otherwise.
    """
    sync = True

    def __init__(self, result):
        self.result = result

    def apply(self, profile):
        result = self.result
        if result['position'] < 1 or result['xpGained'] < 0 or result['coinsGained'] < 0:
            raise CommandRejected('invalid_result')

        position = result['position']
        won = position == 1
        if result.get('mode', 'classic') == 'classic':
            lost = position > 3
        else:
            lost = not won
        keeps_streak = position <= 3

        old_rank = progression.get_rank_from_xp(profile['xp'])
        profile['gamesPlayed'] += 1
        if won:
            profile['wins'] += 1
        if lost:
            profile['losses'] += 1
        profile['streak'] = profile['streak'] + 1 if keeps_streak else 0
        profile['xp'] += result['xpGained']
        profile['coins'] += result['coinsGained']
        profile['recentMatches'] = ([dict(result)] + profile['recentMatches'])[:RECENT_MATCHES_LIMIT]
        return _rank_change(old_rank, profile['xp'])


class ClaimDailyReward:
    sync = True

    def __init__(self, today=None):
        self.today = today or date.today()

    def apply(self, profile):
        daily = profile['dailyReward']
        claimable, streak = progression.daily_reward_status(daily['lastClaim'], daily['streak'], self.today)
        if not claimable:
            raise CommandRejected('already_claimed')

        day = progression.next_daily_streak(streak)
        reward = progression.daily_reward_for(day)
        old_rank = progression.get_rank_from_xp(profile['xp'])
        profile['coins'] += reward['coins']
        profile['xp'] += reward['xp']
        profile['dailyReward'] = {'lastClaim': self.today.isoformat(), 'streak': day}

        data = _rank_change(old_rank, profile['xp'])
        data.update(day=day, reward=reward)
        return data


class UpdateProfile:
    """Merge fields loaded from the server. Not pushed back."""
    sync = False

    def __init__(self, fields):
        self.fields = fields

    def apply(self, profile):
        merged = []
        for field in UPDATABLE_FIELDS:
            if field in self.fields and self.fields[field] is not None:
                profile[field] = copy.deepcopy(self.fields[field])
                merged.append(field)
        profile['recentMatches'] = profile['recentMatches'][:RECENT_MATCHES_LIMIT]
        return {'fields': merged}


def _rank_change(old_rank, xp):
    new_rank = progression.get_rank_from_xp(xp)
    return {
        'rankUp': progression.rank_ordinal(new_rank) > progression.rank_ordinal(old_rank),
        'oldRank': old_rank,
        'newRank': new_rank,
    }


# ============ STORE ============

class ProfileStore:
    def __init__(self, profile=None, cache=None, remote=None):
        self.cache = cache
        self.remote = remote
        if profile is None and cache is not None:
            profile = cache.load()
        self._profile = dict(default_profile(), **(profile or {}))
        self._lock = threading.RLock()

    @property
    def profile(self):
        with self._lock:
            return copy.deepcopy(self._profile)

    @property
    def version(self):
        with self._lock:
            return self._profile['version']

    def lifeline_count(self, lifeline_id):
        with self._lock:
            return self._profile['lifelines'].get(lifeline_id, 0)

    def dispatch(self, command):
        """Apply one command atomically and report what happened."""
        with self._lock:
            working = copy.deepcopy(self._profile)
            try:
                data = command.apply(working)
            except CommandRejected as e:
                return CommandResult(False, e.reason, copy.deepcopy(self._profile), None)

            working['version'] = self._profile['version'] + 1
            self._profile = working
            snapshot = copy.deepcopy(working)

            # Still under the lock so cache writes and pushes keep version order
            if self.cache is not None:
                self.cache.save(snapshot)
            if self.remote is not None and command.sync:
                self.remote.push(snapshot)

        return CommandResult(True, None, snapshot, data)

    def daily_reward_status(self, today=None):
        today = today or date.today()
        with self._lock:
            daily = dict(self._profile['dailyReward'])
        claimable, streak = progression.daily_reward_status(daily['lastClaim'], daily['streak'], today)
        next_day = progression.next_daily_streak(streak)
        return {
            'claimable': claimable,
            'streak': streak,
            'nextDay': next_day,
            'reward': progression.daily_reward_for(next_day),
        }

    def load_from_server(self, user):
        return self.dispatch(UpdateProfile(user))

    def close(self):
        """Wait for queued pushes and stop the sync worker."""
        if self.remote is not None:
            self.remote.close()


# ============ PERSISTENCE ============

class LocalCache:
    """Profile snapshot kept in a JSON file next to the app."""

    def __init__(self, path):
        self.path = path

    def load(self):
        try:
            with open(self.path, encoding='utf-8') as f:
                return json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            print(f"Profile cache unreadable at {self.path}: {e}")
            return None

    def save(self, profile):
        dir_path = os.path.dirname(os.path.abspath(self.path))
        try:
            os.makedirs(dir_path, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=dir_path, suffix='.tmp')
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump(profile, f, ensure_ascii=False, indent=2)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
            return True
        except OSError as e:
            print(f"Profile cache write failed for {self.path}: {e}")
            return False


class RemoteSync:
    """Pushes profile snapshots to the server one at a time, in order."""

    def __init__(self, client):
        self.client = client
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='profile-sync')

    def push(self, profile):
        payload = {field: profile[field] for field in SYNC_FIELDS}
        return self._executor.submit(self._send, payload)

    def _send(self, payload):
        try:
            return self.client.update_profile(payload)
        except QuizArenaError as e:
            print(f"Profile sync rejected: {e.message}")
            return None
        except Exception as e:
            print(f"Profile sync error: {e}")
            return None

    def close(self):
        self._executor.shutdown(wait=True)
