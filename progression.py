import random
from datetime import date, datetime, timedelta

XP_PER_LEVEL = 200

# Ordered lowest to highest; each tier is split into `levels` bands of XP_PER_LEVEL
RANK_TIERS = [
    {'tier': 'beginner', 'label': 'Beginner', 'color': '#94A3B8', 'icon': 'school-outline', 'levels': 5},
    {'tier': 'intermediate', 'label': 'Intermediate', 'color': '#38BDF8', 'icon': 'fitness-outline', 'levels': 5},
    {'tier': 'smart', 'label': 'Smart', 'color': '#10B981', 'icon': 'bulb-outline', 'levels': 5},
    {'tier': 'expert', 'label': 'Expert', 'color': '#A855F7', 'icon': 'diamond-outline', 'levels': 5},
    {'tier': 'genius', 'label': 'Genius', 'color': '#F59E0B', 'icon': 'flame-outline', 'levels': 5},
    {'tier': 'mastermind', 'label': 'Mastermind', 'color': '#FFD700', 'icon': 'trophy-outline', 'levels': 1},
]

TOTAL_LEVELS = sum(t['levels'] for t in RANK_TIERS)

STARTING_COINS = 500
STARTING_LIFELINES = {'fifty_fifty': 2, 'time_freeze': 1, 'shield': 1}

LIFELINES = {
    'fifty_fifty': {'name': '50/50', 'icon': 'cut-outline', 'description': 'Remove two wrong answers', 'price': 50},
    'time_freeze': {'name': 'Time Freeze', 'icon': 'snow-outline', 'description': 'Stop the timer for 10 seconds', 'price': 75},
    'shield': {'name': 'Shield', 'icon': 'shield-checkmark-outline', 'description': 'Protect against one wrong answer', 'price': 100},
}

DAILY_REWARDS = [
    {'day': 1, 'coins': 50, 'xp': 10},
    {'day': 2, 'coins': 75, 'xp': 15},
    {'day': 3, 'coins': 100, 'xp': 20},
    {'day': 4, 'coins': 150, 'xp': 30},
    {'day': 5, 'coins': 200, 'xp': 40},
    {'day': 6, 'coins': 300, 'xp': 50},
    {'day': 7, 'coins': 500, 'xp': 100, 'bonus': True},
]

# Fixed rewards for the head-to-head modes: (xp, coins)
DUEL_REWARDS = {'win': (50, 100), 'loss': (15, 25)}
TEAM_REWARDS = {'win': (45, 80), 'loss': (12, 20)}

ACHIEVEMENTS = [
    {'id': 'first_win', 'title': 'First Victory', 'type': 'wins', 'requirement': 1, 'reward': {'xp': 50, 'coins': 100}},
    {'id': 'wins_10', 'title': 'Warrior', 'type': 'wins', 'requirement': 10, 'reward': {'xp': 100, 'coins': 200}},
    {'id': 'wins_50', 'title': 'Champion', 'type': 'wins', 'requirement': 50, 'reward': {'xp': 250, 'coins': 500}},
    {'id': 'wins_100', 'title': 'Legendary', 'type': 'wins', 'requirement': 100, 'reward': {'xp': 500, 'coins': 1000}},
    {'id': 'games_25', 'title': 'Regular', 'type': 'games', 'requirement': 25, 'reward': {'xp': 75, 'coins': 150}},
    {'id': 'games_100', 'title': 'Quiz Addict', 'type': 'games', 'requirement': 100, 'reward': {'xp': 200, 'coins': 400}},
    {'id': 'streak_3', 'title': 'Hat Trick', 'type': 'streak', 'requirement': 3, 'reward': {'xp': 50, 'coins': 75}},
    {'id': 'streak_5', 'title': 'Unstoppable', 'type': 'streak', 'requirement': 5, 'reward': {'xp': 100, 'coins': 200}},
    {'id': 'streak_10', 'title': 'Winning Machine', 'type': 'streak', 'requirement': 10, 'reward': {'xp': 300, 'coins': 500}},
    {'id': 'xp_1000', 'title': 'Rising Expert', 'type': 'xp', 'requirement': 1000, 'reward': {'xp': 100, 'coins': 200}},
    {'id': 'xp_5000', 'title': 'Scholar', 'type': 'xp', 'requirement': 5000, 'reward': {'xp': 250, 'coins': 500}},
]

# Profile field each achievement type is measured against
ACHIEVEMENT_FIELDS = {'wins': 'wins', 'games': 'gamesPlayed', 'streak': 'streak', 'xp': 'xp'}

CURRENT_SEASON = {
    'id': 'season_1',
    'name': 'Season of Challenge',
    'start_date': date(2026, 2, 1),
    'end_date': date(2026, 4, 1),
    'icon': 'trophy',
    'color': '#FFD700',
}

BOT_NAMES = [
    'Quiz Master', 'Brain Wave', 'Know-It-All', 'Mind Flash', 'Clever Fox',
    'Trivia Ninja', 'Wise King', 'Puzzle Pro', 'Big Brain', 'Challenge Hero',
    'Logic Prince', 'Question Wizard', 'Brainstorm', 'Smarty Pants', 'Mastermind',
    'Fact Hunter', 'Sage', 'Bookworm', 'Night Owl',
]

LEADERBOARD_BOT_XP = (500, 6500)


def get_rank_from_xp(xp):
    """Map accumulated XP to its rank band.

    A level matches when ``xp < max``; the single mastermind level always
    matches so the top tier has no upper bound. Its ``maxXP`` is still
    reported as floor + 200 for progress bars.
    """
    acc_xp = 0
    for t in RANK_TIERS:
        for level in range(1, t['levels'] + 1):
            min_xp = acc_xp
            max_xp = acc_xp + XP_PER_LEVEL
            if xp < max_xp or (t['tier'] == 'mastermind' and level == t['levels']):
                return _rank_info(t, level, min_xp, max_xp)
            acc_xp += XP_PER_LEVEL
    return _rank_info(RANK_TIERS[-1], 1, acc_xp, acc_xp + XP_PER_LEVEL)


def _rank_info(tier, level, min_xp, max_xp):
    if tier['tier'] == 'mastermind':
        label = tier['label']
    else:
        label = f"{tier['label']} {level}"
    return {
        'tier': tier['tier'],
        'level': level,
        'label': label,
        'color': tier['color'],
        'icon': tier['icon'],
        'minXP': min_xp,
        'maxXP': max_xp,
    }


def rank_ordinal(rank):
    """Global position of a rank, 0 for Beginner 1 up to TOTAL_LEVELS - 1."""
    ordinal = 0
    for t in RANK_TIERS:
        if t['tier'] == rank['tier']:
            return ordinal + min(rank['level'], t['levels']) - 1
        ordinal += t['levels']
    raise ValueError(f"Unknown rank tier: {rank['tier']}")


def rank_progress(xp):
    """Fraction of the way through the current level, for progress bars."""
    rank = get_rank_from_xp(xp)
    span = rank['maxXP'] - rank['minXP']
    return max(0.0, min(1.0, (xp - rank['minXP']) / span))


# ============ MATCH SCORING ============

def score_answer(correct, remaining_seconds):
    """Points for one question: faster correct answers score more, floor of 50."""
    if not correct:
        return 0
    return max(50, remaining_seconds * 10)


def classic_match_rewards(player_score, bot_scores):
    """Placement and rewards for the 10-player free-for-all.

    Scores are sorted descending and the player takes the first slot holding
    their score, so a tie with a bot resolves in the player's favour.
    """
    all_scores = sorted(list(bot_scores) + [player_score], reverse=True)
    position = all_scores.index(player_score) + 1
    return {
        'position': position,
        'totalPlayers': len(all_scores),
        'xpGained': max(10, (11 - position) * 10),
        'coinsGained': max(5, (11 - position) * 15),
    }


def duel_match_rewards(player_score, opponent_score):
    """1v1 result: ties go to the player."""
    won = player_score >= opponent_score
    xp, coins = DUEL_REWARDS['win' if won else 'loss']
    return {
        'position': 1 if won else 2,
        'totalPlayers': 2,
        'xpGained': xp,
        'coinsGained': coins,
    }


def team_match_rewards(team_score, enemy_score):
    """2v2 result: ties go to the player's team."""
    won = team_score >= enemy_score
    xp, coins = TEAM_REWARDS['win' if won else 'loss']
    return {
        'position': 1 if won else 2,
        'totalPlayers': 4,
        'xpGained': xp,
        'coinsGained': coins,
    }


def build_match_result(mode, score, rewards, today=None):
    """Assemble an immutable match record from a mode's rewards."""
    today = today or date.today()
    return {
        'id': f"m_{int(datetime.now().timestamp() * 1000)}_{random.randint(100, 999)}",
        'date': today.isoformat(),
        'mode': mode,
        'position': rewards['position'],
        'score': score,
        'totalPlayers': rewards['totalPlayers'],
        'xpGained': rewards['xpGained'],
        'coinsGained': rewards['coinsGained'],
    }


# ============ DAILY REWARDS ============

def daily_reward_status(last_claim, streak, today):
    """Work out whether today's reward can be claimed.

    Compares calendar dates, not a rolling 24h window. Returns
    ``(claimable, effective_streak)``; a gap of two or more days resets the
    streak to 0.
    """
    if last_claim is None:
        return True, 0
    if isinstance(last_claim, str):
        last_claim = datetime.fromisoformat(last_claim)
    if isinstance(last_claim, datetime):
        last_claim = last_claim.date()

    if last_claim == today:
        return False, streak
    if last_claim == today - timedelta(days=1):
        return True, streak
    return True, 0


def next_daily_streak(streak):
    return (streak % len(DAILY_REWARDS)) + 1


def daily_reward_for(day):
    return DAILY_REWARDS[day - 1]


# ============ LEADERBOARD ============

def generate_leaderboard(player_name, player_xp, count=19, rng=None):
    """Fill a leaderboard with bot players around the real one.

    Regenerated on every view and never stored; it stands in until there is a
    real ranked leaderboard.
    """
    rng = rng or random
    names = (BOT_NAMES * (count // len(BOT_NAMES) + 1))[:count]
    low, high = LEADERBOARD_BOT_XP
    entries = []
    for name in names:
        xp = rng.randrange(low, high)
        entries.append({'name': name, 'xp': xp, 'rank': get_rank_from_xp(xp), 'is_self': False})
    entries.append({'name': player_name, 'xp': player_xp, 'rank': get_rank_from_xp(player_xp), 'is_self': True})
    entries.sort(key=lambda e: -e['xp'])
    for i, entry in enumerate(entries):
        entry['position'] = i + 1
    return entries


# ============ ACHIEVEMENTS & SEASON ============

def achievement_progress(profile):
    progress = []
    for achievement in ACHIEVEMENTS:
        current = profile.get(ACHIEVEMENT_FIELDS[achievement['type']], 0)
        progress.append({
            'achievement': achievement,
            'current': current,
            'unlocked': current >= achievement['requirement'],
            'progress': min(current / achievement['requirement'], 1),
        })
    return progress


def season_days_left(today=None):
    today = today or date.today()
    return max(0, (CURRENT_SEASON['end_date'] - today).days)
