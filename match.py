"""Match sessions against simulated bots.

Every timer a session starts (the countdown, bot answers, the pause before
the next question, the end of a time freeze) goes through a scheduler keyed
by the session id, so finishing or tearing down a session cancels all of
them at once.
"""

import heapq
import itertools
import random
import threading
import time
import uuid

import progression
import questions
from profile_store import RecordMatch, UseLifeline

QUESTION_TIME = 15
ADVANCE_DELAY = 1.2
FREEZE_SECONDS = 10

MODES = ('classic', '1v1', '2v2')
QUESTION_COUNTS = {'classic': 30, '1v1': 15, '2v2': 20}
CLASSIC_BOT_COUNT = 9

# accuracy is the chance of a correct answer, points is the inclusive range
# scored for one; delay is when a timed bot answers, in seconds
BOTS = {
    'classic': {'accuracy': 0.65, 'points': (50, 149)},
    'opponent': {'accuracy': 0.60, 'points': (40, 119), 'delay': (2, 10)},
    'teammate': {'accuracy': 0.55, 'points': (40, 109), 'delay': (3, 10)},
    'enemy': {'accuracy': 0.60, 'points': (40, 119), 'delay': (2, 10)},
}


# ============ SCHEDULERS ============

class ScheduledTask:
    def __init__(self, session_id, when, callback):
        self.session_id = session_id
        self.when = when
        self.callback = callback
        self.cancelled = False
        self.timer = None


class ManualScheduler:
    """Fake clock for tests: nothing runs until ``advance`` is called."""

    def __init__(self):
        self.now = 0.0
        self._queue = []
        self._seq = itertools.count()

    def call_later(self, session_id, delay, callback):
        task = ScheduledTask(session_id, self.now + delay, callback)
        heapq.heappush(self._queue, (task.when, next(self._seq), task))
        return task

    def cancel(self, task):
        task.cancelled = True

    def cancel_session(self, session_id):
        for _, _, task in self._queue:
            if task.session_id == session_id:
                task.cancelled = True

    def pending(self, session_id=None):
        return sum(1 for _, _, task in self._queue
                   if not task.cancelled and (session_id is None or task.session_id == session_id))

    def advance(self, seconds):
        target = self.now + seconds
        # Small slack so repeated 0.1/1.2 steps don't miss a deadline on rounding
        while self._queue and self._queue[0][0] <= target + 1e-9:
            when, _, task = heapq.heappop(self._queue)
            self.now = max(self.now, when)
            if not task.cancelled:
                task.callback()
        self.now = target


class TimerScheduler:
    """Real-time scheduler backed by daemon ``threading.Timer`` threads."""

    def __init__(self):
        self._lock = threading.Lock()
        self._tasks = {}

    def call_later(self, session_id, delay, callback):
        task = ScheduledTask(session_id, time.monotonic() + delay, callback)
        task.timer = threading.Timer(delay, self._run, args=(task,))
        task.timer.daemon = True
        with self._lock:
            self._tasks.setdefault(session_id, set()).add(task)
        task.timer.start()
        return task

    def _run(self, task):
        with self._lock:
            self._tasks.get(task.session_id, set()).discard(task)
        if not task.cancelled:
            task.callback()

    def cancel(self, task):
        task.cancelled = True
        if task.timer:
            task.timer.cancel()
        with self._lock:
            self._tasks.get(task.session_id, set()).discard(task)

    def cancel_session(self, session_id):
        with self._lock:
            tasks = self._tasks.pop(session_id, set())
        for task in tasks:
            task.cancelled = True
            if task.timer:
                task.timer.cancel()

    def pending(self, session_id=None):
        with self._lock:
            if session_id is not None:
                return len(self._tasks.get(session_id, ()))
            return sum(len(tasks) for tasks in self._tasks.values())


# ============ GAME SESSION ============

class GameSession:
    def __init__(self, store, scheduler, mode='classic', category='all', rng=None,
                 session_id=None, question_list=None, on_feedback=None):
        if mode not in MODES:
            raise ValueError(f"Unknown game mode: {mode}")
        self.store = store
        self.scheduler = scheduler
        self.mode = mode
        self.rng = rng or random.Random()
        self.session_id = session_id or uuid.uuid4().hex
        self.on_feedback = on_feedback
        if question_list is None:
            question_list = questions.get_game_questions(QUESTION_COUNTS[mode], category, rng=self.rng)
        if not question_list:
            raise ValueError(f"No questions available for category {category}")
        self.questions = question_list

        self._lock = threading.RLock()
        self.phase = 'idle'
        self.index = 0
        self.remaining = QUESTION_TIME
        self.score = 0
        self.selected = None
        self.hidden_options = []
        self.frozen = False
        self.shield_active = False
        self.team_locked = False
        self.answered_by = None
        self.feedback = []
        self.result = None
        self.record = None
        self._tick_task = None

        names = self.rng.sample(progression.BOT_NAMES, CLASSIC_BOT_COUNT)
        if mode == 'classic':
            self.bots = [{'name': name, 'score': 0} for name in names]
        elif mode == '1v1':
            self.opponent = {'name': names[0], 'score': 0}
        else:
            self.teammate = names[0]
            self.enemies = names[1:3]
            self.enemy_score = 0

    @property
    def current_question(self):
        return self.questions[self.index]

    @property
    def finished(self):
        return self.phase == 'finished'

    def start(self):
        with self._lock:
            if self.phase != 'idle':
                return
            self._begin_question()

    def _begin_question(self):
        self.phase = 'question'
        self.remaining = QUESTION_TIME
        self.selected = None
        self.hidden_options = []
        self.frozen = False
        self.team_locked = False
        self.answered_by = None
        self._schedule_tick()

        if self.mode == '1v1':
            self._schedule_bot('opponent', self._opponent_answers)
        elif self.mode == '2v2':
            self._schedule_bot('teammate', self._teammate_answers, phases=('question',))
            self._schedule_bot('enemy', self._enemy_answers)

    def _guarded(self, index, callback, phases=('question',)):
        """Wrap a timer callback so it only runs for the question it was set for."""
        def run():
            with self._lock:
                if self.index != index or self.phase not in phases:
                    return
                callback()
        return run

    def _schedule(self, delay, callback, phases=('question',)):
        return self.scheduler.call_later(self.session_id, delay,
                                         self._guarded(self.index, callback, phases))

    def _schedule_tick(self):
        self._tick_task = self._schedule(1, self._tick)

    def _schedule_bot(self, kind, callback, phases=('question', 'reveal')):
        low, high = BOTS[kind]['delay']
        # Rival bots keep answering during the reveal pause until the question changes
        self._schedule(self.rng.uniform(low, high), callback, phases=phases)

    def _emit(self, event):
        self.feedback.append(event)
        if self.on_feedback:
            self.on_feedback(event)

    # ============ COUNTDOWN ============

    def _tick(self):
        if self.frozen:
            return
        self.remaining -= 1
        if self.remaining <= 0:
            self.remaining = 0
            self._time_up()
        else:
            self._schedule_tick()

    def _time_up(self):
        # A timeout is a wrong answer that the shield does not cover
        self._emit('error')
        self._end_question()

    def _stop_countdown(self):
        if self._tick_task is not None:
            self.scheduler.cancel(self._tick_task)
            self._tick_task = None

    def _end_question(self):
        self._stop_countdown()
        if self.mode == 'classic':
            self._score_classic_bots()
        self.phase = 'reveal'
        self._schedule(ADVANCE_DELAY, self._advance, phases=('reveal',))

    def _advance(self):
        if self.index >= len(self.questions) - 1:
            self._finish()
            return
        self.scheduler.cancel_session(self.session_id)
        self.index += 1
        self._begin_question()

    # ============ ANSWERS ============

    def answer(self, option_index):
        """Lock in the player's answer. Returns None if answering isn't possible now."""
        with self._lock:
            if self.phase != 'question' or self.team_locked:
                return None
            question = self.current_question
            correct = option_index == question['correctIndex']
            points = progression.score_answer(correct, self.remaining)

            self.selected = option_index
            self.score += points
            if self.mode == '2v2':
                self.team_locked = True
                self.answered_by = 'player'

            if correct:
                self._emit('correct')
            elif self.shield_active:
                self._emit('shielded')
            else:
                self._emit('error')
            if not correct:
                self.shield_active = False

            self._end_question()
            return {'correct': correct, 'points': points, 'correctIndex': question['correctIndex']}

    def _bot_points(self, kind):
        bot = BOTS[kind]
        if self.rng.random() < bot['accuracy']:
            return self.rng.randint(*bot['points'])
        return 0

    def _score_classic_bots(self):
        for bot in self.bots:
            bot['score'] += self._bot_points('classic')

    def _opponent_answers(self):
        self.opponent['score'] += self._bot_points('opponent')

    def _enemy_answers(self):
        self.enemy_score += self._bot_points('enemy')

    def _teammate_answers(self):
        if self.team_locked:
            return
        self.team_locked = True
        self.answered_by = 'teammate'
        self.score += self._bot_points('teammate')
        self._end_question()

    # ============ LIFELINES ============

    def _consume(self, lifeline_id):
        return self.store.dispatch(UseLifeline(lifeline_id)).ok

    def _lifeline_allowed(self):
        return self.phase == 'question' and not self.team_locked

    def use_fifty_fifty(self):
        """Hide two wrong options. Returns the hidden indices, or None."""
        with self._lock:
            if not self._lifeline_allowed() or self.hidden_options:
                return None
            if not self._consume('fifty_fifty'):
                return None
            question = self.current_question
            wrong = [i for i in range(len(question['options'])) if i != question['correctIndex']]
            self.hidden_options = sorted(self.rng.sample(wrong, 2))
            return self.hidden_options

    def use_time_freeze(self):
        with self._lock:
            if not self._lifeline_allowed() or self.frozen:
                return False
            if not self._consume('time_freeze'):
                return False
            self.frozen = True
            self._stop_countdown()
            self._schedule(FREEZE_SECONDS, self._unfreeze)
            return True

    def _unfreeze(self):
        self.frozen = False
        self._schedule_tick()

    def use_shield(self):
        with self._lock:
            if not self._lifeline_allowed() or self.shield_active:
                return False
            if not self._consume('shield'):
                return False
            self.shield_active = True
            return True

    # ============ RESULT ============

    def _rewards(self):
        if self.mode == 'classic':
            return progression.classic_match_rewards(self.score, [b['score'] for b in self.bots])
        if self.mode == '1v1':
            return progression.duel_match_rewards(self.score, self.opponent['score'])
        return progression.team_match_rewards(self.score, self.enemy_score)

    def _finish(self):
        self.scheduler.cancel_session(self.session_id)
        self.phase = 'finished'
        self.result = progression.build_match_result(self.mode, self.score, self._rewards())
        self.record = self.store.dispatch(RecordMatch(self.result))

    def teardown(self):
        """Abandon the session: cancel every timer and record nothing."""
        with self._lock:
            self.scheduler.cancel_session(self.session_id)
            self.phase = 'finished'
