"""Study/break countdown driven by an injectable clock."""

import logging
import math
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Protocol

logger = logging.getLogger(__name__)

DEFAULT_STUDY_MINUTES = 25
ADHD_STUDY_MINUTES = 15
SENSORY_STUDY_MINUTES = 20
MIN_BREAK_MINUTES = 5
BREAK_RATIO = 0.2


class Clock(Protocol):
    def now(self) -> float:
        ...


class MonotonicClock:
    def now(self) -> float:
        return time.monotonic()


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: float = 0.0):
        self._now = start

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now += seconds


class TimerState(str, Enum):
    IDLE = 'idle'
    STUDYING = 'studying'
    BREAK = 'break'
    PAUSED = 'paused'


@dataclass(frozen=True)
class TimerSettings:
    study_length: int
    break_length: int
    timer_style: str
    enable_notifications: bool
    enable_sounds: bool


@dataclass(frozen=True)
class SessionData:
    duration: int
    completed: bool
    type: str
    timestamp: datetime


def derive_timer_settings(
    break_interval: int | None = None,
    adhd_friendly: bool = False,
    autism_friendly: bool = False,
    sensory_friendly: bool = False,
) -> TimerSettings:
    if break_interval:
        study_length = break_interval
    elif adhd_friendly:
        study_length = ADHD_STUDY_MINUTES
    elif sensory_friendly:
        study_length = SENSORY_STUDY_MINUTES
    else:
        study_length = DEFAULT_STUDY_MINUTES

    break_length = max(MIN_BREAK_MINUTES, math.floor(study_length * BREAK_RATIO))

    if adhd_friendly:
        style, notifications, sounds = 'adhd', True, True
    elif autism_friendly:
        style, notifications, sounds = 'quiet', True, False
    elif sensory_friendly:
        style, notifications, sounds = 'calm', False, False
    else:
        style, notifications, sounds = 'standard', True, True

    return TimerSettings(
        study_length=study_length,
        break_length=break_length,
        timer_style=style,
        enable_notifications=notifications,
        enable_sounds=sounds,
    )


def format_time(seconds: int) -> str:
    minutes, secs = divmod(max(0, int(seconds)), 60)
    return f'{minutes:02d}:{secs:02d}'


def display_name(settings: TimerSettings) -> str:
    return {
        'adhd': 'ADHD Focus',
        'quiet': 'Autism Support',
        'calm': 'Sensory Friendly',
    }.get(settings.timer_style, 'Standard')


class StudyTimer:
    """Countdown that alternates between study and break sessions.

    ``tick()`` must be called periodically; it consumes the clock time elapsed
    since the last tick. When a countdown reaches zero the timer goes idle in
    the next mode with that mode's full length loaded, so a break is suggested
    rather than started.
    """

    def __init__(
        self,
        settings: TimerSettings,
        clock: Clock | None = None,
        on_session_complete: Callable[[SessionData], None] | None = None,
    ):
        self.settings = settings
        self.clock = clock or MonotonicClock()
        self.on_session_complete = on_session_complete
        self.mode = 'study'
        self.session_count = 0
        self.is_active = False
        self.is_paused = False
        self.time_left = float(settings.study_length * 60)
        self._last_tick: float | None = None

    @property
    def state(self) -> TimerState:
        if not self.is_active:
            return TimerState.IDLE
        if self.is_paused:
            return TimerState.PAUSED
        return TimerState.STUDYING if self.mode == 'study' else TimerState.BREAK

    @property
    def seconds_left(self) -> int:
        return math.ceil(self.time_left)

    def _total_seconds(self, mode: str | None = None) -> int:
        mode = mode or self.mode
        minutes = self.settings.study_length if mode == 'study' else self.settings.break_length
        return minutes * 60

    def _start(self, mode: str) -> None:
        self.mode = mode
        self.time_left = float(self._total_seconds(mode))
        self.is_active = True
        self.is_paused = False
        self._last_tick = self.clock.now()

    def start_study(self) -> None:
        self._start('study')

    def start_break(self) -> None:
        self._start('break')

    def pause(self) -> None:
        if self.state in (TimerState.STUDYING, TimerState.BREAK):
            self.tick()
            self.is_paused = True

    def resume(self) -> None:
        if self.state is TimerState.PAUSED:
            self.is_paused = False
            self._last_tick = self.clock.now()

    def stop(self) -> None:
        self.is_active = False
        self.is_paused = False
        self.mode = 'study'
        self.time_left = float(self._total_seconds('study'))
        self._last_tick = None

    def tick(self) -> TimerState:
        if not self.is_active or self.is_paused:
            return self.state

        now = self.clock.now()
        elapsed = now - (self._last_tick if self._last_tick is not None else now)
        self._last_tick = now
        self.time_left = max(0.0, self.time_left - elapsed)

        if self.time_left <= 0:
            self._complete()
        return self.state

    def _complete(self) -> None:
        finished_mode = self.mode
        session = SessionData(
            duration=self.settings.study_length if finished_mode == 'study' else self.settings.break_length,
            completed=True,
            type=finished_mode,
            timestamp=datetime.now(timezone.utc),
        )

        self.is_active = False
        self.is_paused = False
        self._last_tick = None
        if finished_mode == 'study':
            self.session_count += 1
            self.mode = 'break'
        else:
            self.mode = 'study'
        self.time_left = float(self._total_seconds())

        logger.info('%s session complete (sessions=%d)', finished_mode, self.session_count)
        if self.on_session_complete is not None:
            self.on_session_complete(session)

    def progress(self) -> float:
        total = self._total_seconds()
        return (total - self.time_left) / total * 100

    def formatted(self) -> str:
        return format_time(self.seconds_left)
