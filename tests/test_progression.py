"""
Tests for the progression rules: ranks, scoring, match rewards, daily
rewards, the synthesized leaderboard and achievements.
"""

import random
from datetime import date, datetime

import pytest

import progression
from progression import (
    classic_match_rewards,
    daily_reward_status,
    duel_match_rewards,
    get_rank_from_xp,
    rank_ordinal,
    score_answer,
    team_match_rewards,
)


# ============================================================================
# RANKS
# ============================================================================


class TestRanks:
    """XP to rank band mapping."""

    def test_zero_xp_is_beginner_one(self):
        rank = get_rank_from_xp(0)

        assert rank['tier'] == 'beginner'
        assert rank['level'] == 1
        assert rank['label'] == 'Beginner 1'
        assert rank['color'] == '#94A3B8'
        assert rank['minXP'] == 0
        assert rank['maxXP'] == 200

    def test_thousand_xp_starts_the_band_after_beginner(self):
        rank = get_rank_from_xp(1000)

        assert rank['tier'] == 'intermediate'
        assert rank['level'] == 1
        assert rank['minXP'] == 1000
        assert rank['color'] == '#38BDF8'

    def test_boundary_belongs_to_next_level(self):
        assert get_rank_from_xp(199)['level'] == 1
        assert get_rank_from_xp(200)['level'] == 2

    def test_expert_starts_at_three_thousand(self):
        assert get_rank_from_xp(2999)['tier'] == 'smart'
        assert get_rank_from_xp(3000)['tier'] == 'expert'

    def test_mastermind_is_open_ended(self):
        rank = get_rank_from_xp(1_000_000)

        assert rank['tier'] == 'mastermind'
        assert rank['label'] == 'Mastermind'
        assert rank['minXP'] == 5000
        assert rank['color'] == '#FFD700'

    @pytest.mark.parametrize('xp', [0, 1, 199, 200, 999, 1000, 2500, 4999, 5000, 5199, 5200, 9000])
    def test_band_contains_xp(self, xp):
        rank = get_rank_from_xp(xp)

        assert rank['minXP'] <= xp
        assert xp < rank['maxXP'] or rank['tier'] == 'mastermind'

    def test_ordinal_is_monotonic_in_xp(self):
        ordinals = [rank_ordinal(get_rank_from_xp(xp)) for xp in range(0, 6000, 50)]

        assert ordinals == sorted(ordinals)
        assert ordinals[0] == 0
        assert ordinals[-1] == progression.TOTAL_LEVELS - 1

    def test_progress_fraction(self):
        assert progression.rank_progress(0) == 0.0
        assert progression.rank_progress(100) == 0.5
        assert progression.rank_progress(10_000) == 1.0


# ============================================================================
# SCORING & MATCH REWARDS
# ============================================================================


class TestScoring:
    """Per-question points."""

    def test_wrong_answer_scores_nothing(self):
        assert score_answer(False, 15) == 0

    def test_fast_answer_scores_ten_per_second(self):
        assert score_answer(True, 12) == 120

    def test_slow_answer_has_a_floor(self):
        assert score_answer(True, 1) == 50
        assert score_answer(True, 0) == 50


class TestMatchRewards:
    """Placement and rewards per mode."""

    def test_classic_scenario(self):
        # Arrange
        bots = [800, 750, 700, 650, 600, 550, 500, 450, 400]

        # Act
        rewards = classic_match_rewards(720, bots)

        # Assert
        assert rewards['position'] == 3
        assert rewards['xpGained'] == 80
        assert rewards['coinsGained'] == 120
        assert rewards['totalPlayers'] == 10

    def test_classic_last_place_gets_floor_rewards(self):
        rewards = classic_match_rewards(0, [100] * 9)

        assert rewards['position'] == 10
        assert rewards['xpGained'] == 10
        assert rewards['coinsGained'] == 15

    def test_classic_tie_goes_to_player(self):
        rewards = classic_match_rewards(500, [900, 500, 100])

        assert rewards['position'] == 2

    def test_duel_win_and_loss(self):
        assert duel_match_rewards(300, 200) == {
            'position': 1, 'totalPlayers': 2, 'xpGained': 50, 'coinsGained': 100,
        }
        assert duel_match_rewards(100, 200)['xpGained'] == 15
        assert duel_match_rewards(100, 200)['coinsGained'] == 25

    def test_duel_tie_is_a_win(self):
        assert duel_match_rewards(200, 200)['position'] == 1

    def test_team_win_and_loss(self):
        won = team_match_rewards(500, 400)
        lost = team_match_rewards(300, 400)

        assert (won['xpGained'], won['coinsGained'], won['totalPlayers']) == (45, 80, 4)
        assert (lost['xpGained'], lost['coinsGained'], lost['position']) == (12, 20, 2)

    def test_build_match_result(self):
        rewards = classic_match_rewards(720, [800, 750, 700])

        result = progression.build_match_result('classic', 720, rewards, today=date(2026, 3, 1))

        assert result['id'].startswith('m_')
        assert result['date'] == '2026-03-01'
        assert result['mode'] == 'classic'
        assert result['position'] == 3
        assert result['score'] == 720


# ============================================================================
# DAILY REWARDS
# ============================================================================


class TestDailyRewards:
    """Calendar-date claim eligibility."""

    def test_first_claim_is_allowed(self):
        assert daily_reward_status(None, 0, date(2026, 3, 10)) == (True, 0)

    def test_claim_the_next_day_keeps_streak(self):
        assert daily_reward_status('2026-03-09', 3, date(2026, 3, 10)) == (True, 3)

    def test_second_claim_same_day_is_refused(self):
        assert daily_reward_status('2026-03-10', 3, date(2026, 3, 10)) == (False, 3)

    def test_gap_resets_streak(self):
        assert daily_reward_status('2026-03-07', 5, date(2026, 3, 10)) == (True, 0)

    def test_calendar_day_not_rolling_window(self):
        # 23:59 yesterday to 00:01 today is a new day
        last = datetime(2026, 3, 9, 23, 59)

        assert daily_reward_status(last, 2, date(2026, 3, 10)) == (True, 2)

    def test_streak_wraps_after_day_seven(self):
        assert progression.next_daily_streak(0) == 1
        assert progression.next_daily_streak(6) == 7
        assert progression.next_daily_streak(7) == 1

    def test_day_seven_is_the_bonus(self):
        assert progression.daily_reward_for(7)['bonus'] is True
        assert progression.daily_reward_for(1) == {'day': 1, 'coins': 50, 'xp': 10}


# ============================================================================
# LEADERBOARD, ACHIEVEMENTS, SEASON
# ============================================================================


class TestLeaderboard:
    """Synthesized leaderboard around the real player."""

    def test_contains_player_and_bots_sorted_by_xp(self):
        entries = progression.generate_leaderboard('Alice', 2000, rng=random.Random(7))

        assert len(entries) == 20
        assert [e['xp'] for e in entries] == sorted((e['xp'] for e in entries), reverse=True)
        assert [e['position'] for e in entries] == list(range(1, 21))
        assert sum(1 for e in entries if e['is_self']) == 1

    def test_bot_xp_in_range(self):
        entries = progression.generate_leaderboard('Alice', 0, count=50, rng=random.Random(3))

        for entry in entries:
            if not entry['is_self']:
                assert 500 <= entry['xp'] < 6500
                assert entry['rank'] == get_rank_from_xp(entry['xp'])


class TestAchievementsAndSeason:

    def test_achievement_progress(self):
        progress = progression.achievement_progress({'wins': 10, 'gamesPlayed': 5, 'streak': 0, 'xp': 0})
        by_id = {p['achievement']['id']: p for p in progress}

        assert by_id['first_win']['unlocked'] is True
        assert by_id['wins_10']['unlocked'] is True
        assert by_id['wins_50']['progress'] == pytest.approx(0.2)
        assert by_id['games_25']['current'] == 5

    def test_season_days_left(self):
        assert progression.season_days_left(date(2026, 3, 30)) == 2
        assert progression.season_days_left(date(2026, 5, 1)) == 0
