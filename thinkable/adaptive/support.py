"""Focus support tools: break reminders, hyperfocus warnings, breathing and fidgets."""

import math
from dataclasses import dataclass

DEFAULT_BREAK_INTERVAL = 25
DEFAULT_HYPERFOCUS_LIMIT = 90
BREATHING_TOTAL_SECONDS = 120

PANEL_STATES = ('expanded', 'minimized', 'hidden')
PANEL_POSITIONS = ('top-left', 'top-right', 'bottom-left', 'bottom-right')

BREAK_TYPES = ('movement', 'breathing', 'sensory', 'hydration')


@dataclass(frozen=True)
class BreathingPhase:
    name: str
    seconds: int
    instruction: str


BREATHING_CYCLE = (
    BreathingPhase('inhale', 4, 'Breathe in slowly...'),
    BreathingPhase('hold', 2, 'Hold your breath...'),
    BreathingPhase('exhale', 4, 'Breathe out gently...'),
    BreathingPhase('pause', 2, 'Rest and relax...'),
)

FIDGET_TOOLS = (
    {'id': 'stress_ball', 'name': 'Stress Ball', 'description': 'Squeeze and release to let tension go'},
    {'id': 'bubble_wrap', 'name': 'Bubble Wrap', 'description': 'Pop a sheet of bubbles one at a time'},
    {'id': 'sand_tray', 'name': 'Sand Tray', 'description': 'Draw slow patterns in virtual sand'},
    {'id': 'focus_sounds', 'name': 'Focus Sounds', 'description': 'Play soft background noise while you work'},
)

ACTION_TOOL_NAMES = {
    'focus_session_started': 'focus_timer',
    'focus_session_completed': 'focus_timer',
    'break_taken': 'break_manager',
    'overwhelm_escape_used': 'overwhelm_escape',
    'energy_level_updated': 'energy_tracker',
}


def is_break_due(elapsed_minutes: float, break_interval: int = DEFAULT_BREAK_INTERVAL) -> bool:
    minutes = int(elapsed_minutes)
    return break_interval > 0 and minutes > 0 and minutes % break_interval == 0


def is_hyperfocus(elapsed_minutes: float, hyperfocus_limit: int = DEFAULT_HYPERFOCUS_LIMIT) -> bool:
    return elapsed_minutes >= hyperfocus_limit


class HyperfocusShield:
    """Warns once per focus session when the hyperfocus limit is crossed."""

    def __init__(self, limit_minutes: int = DEFAULT_HYPERFOCUS_LIMIT):
        self.limit_minutes = limit_minutes
        self.warned = False

    def check(self, elapsed_minutes: float) -> bool:
        if self.warned or not is_hyperfocus(elapsed_minutes, self.limit_minutes):
            return False
        self.warned = True
        return True

    def reset(self) -> None:
        self.warned = False


def breathing_schedule(total_seconds: int = BREATHING_TOTAL_SECONDS) -> list[dict]:
    """Lay the breathing cycle out on a timeline, cutting the last phase at ``total_seconds``."""
    schedule = []
    elapsed = 0
    while elapsed < total_seconds:
        for phase in BREATHING_CYCLE:
            if elapsed >= total_seconds:
                break
            seconds = min(phase.seconds, total_seconds - elapsed)
            schedule.append({
                'phase': phase.name,
                'instruction': phase.instruction,
                'start': elapsed,
                'seconds': seconds,
            })
            elapsed += seconds
    return schedule


def breathing_phase_at(second: float) -> BreathingPhase:
    cycle_length = sum(phase.seconds for phase in BREATHING_CYCLE)
    offset = second % cycle_length
    for phase in BREATHING_CYCLE:
        if offset < phase.seconds:
            return phase
        offset -= phase.seconds
    return BREATHING_CYCLE[0]


def time_of_day(hour: int) -> str:
    if hour < 6:
        return 'late_night'
    if hour < 9:
        return 'early_morning'
    if hour < 12:
        return 'late_morning'
    if hour < 15:
        return 'early_afternoon'
    if hour < 18:
        return 'late_afternoon'
    if hour < 21:
        return 'early_evening'
    return 'late_evening'


def tool_name_for_action(action: str | None) -> str:
    if not action:
        return 'unknown'
    return ACTION_TOOL_NAMES.get(action, action.replace('_', '-'))


def focus_status(
    elapsed_minutes: float,
    break_interval: int = DEFAULT_BREAK_INTERVAL,
    hyperfocus_limit: int = DEFAULT_HYPERFOCUS_LIMIT,
) -> dict:
    minutes = max(0.0, elapsed_minutes)
    if break_interval > 0:
        next_break = (math.floor(minutes / break_interval) + 1) * break_interval
    else:
        next_break = None
    return {
        'elapsed_minutes': int(minutes),
        'break_due': is_break_due(minutes, break_interval),
        'hyperfocus_warning': is_hyperfocus(minutes, hyperfocus_limit),
        'next_break_at_minutes': next_break,
    }
