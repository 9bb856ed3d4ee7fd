"""
phase_controller.py
Phase controller for a main road / minor road intersection.

Main road keeps right-of-way until the minor road sensor reports a waiting
vehicle AND main green has run its minimum. Everything after that is timed.
Unknown phase values recover to MAIN_GREEN and show Red/Red.
"""

import logging
from enum import Enum
from types import MappingProxyType
from typing import NamedTuple

from errors import ConfigurationError

logger = logging.getLogger(__name__)


class Phase(Enum):
    MAIN_GREEN = "MAIN_GREEN"
    MAIN_YELLOW = "MAIN_YELLOW"
    MINOR_GREEN = "MINOR_GREEN"
    MINOR_YELLOW = "MINOR_YELLOW"


class Light(Enum):
    RED = "RED"
    YELLOW = "YELLOW"
    GREEN = "GREEN"


class LightState(NamedTuple):
    main: Light
    minor: Light


class ControllerState(NamedTuple):
    phase: Phase
    elapsed: int


# -------------------------
# TIMING PARAMETERS (ticks)
# -------------------------
PHASE_DURATIONS = MappingProxyType({
    Phase.MAIN_GREEN: 50,   # Minimum only, held until the sensor asks
    Phase.MAIN_YELLOW: 10,
    Phase.MINOR_GREEN: 30,
    Phase.MINOR_YELLOW: 10,
})

RESET_STATE = ControllerState(Phase.MAIN_GREEN, 0)
ALL_RED = LightState(Light.RED, Light.RED)

_LIGHTS = {
    Phase.MAIN_GREEN: LightState(Light.GREEN, Light.RED),
    Phase.MAIN_YELLOW: LightState(Light.YELLOW, Light.RED),
    Phase.MINOR_GREEN: LightState(Light.RED, Light.GREEN),
    Phase.MINOR_YELLOW: LightState(Light.RED, Light.YELLOW),
}

# Timed exits; MAIN_GREEN is handled separately because it needs the sensor.
_TIMED_NEXT = {
    Phase.MAIN_YELLOW: Phase.MINOR_GREEN,
    Phase.MINOR_GREEN: Phase.MINOR_YELLOW,
    Phase.MINOR_YELLOW: Phase.MAIN_GREEN,
}


def validate_durations(durations):
    """
    Check a duration table covers every phase with a positive int.
    Keys other than the four phases are dropped.
    """
    for phase in Phase:
        value = durations.get(phase)
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise ConfigurationError(
                f"Duration for {phase.name} must be a positive integer, got {value!r}"
            )
    return MappingProxyType({phase: durations[phase] for phase in Phase})


def duration_satisfied(phase, elapsed: int, durations=PHASE_DURATIONS) -> bool:
    """True once `phase` has been held for its minimum number of ticks."""
    try:
        minimum = durations[phase]
    except (KeyError, TypeError):
        return False
    return elapsed >= minimum - 1


def next_phase(phase, satisfied: bool, sensor: bool) -> Phase:
    if phase is Phase.MAIN_GREEN:
        return Phase.MAIN_YELLOW if (satisfied and sensor) else Phase.MAIN_GREEN
    try:
        following = _TIMED_NEXT[phase]
    except (KeyError, TypeError):
        return Phase.MAIN_GREEN
    return following if satisfied else phase


def lights_for(phase) -> LightState:
    """Lamp colours for a phase. Anything unrecognised is Red/Red."""
    try:
        return _LIGHTS[phase]
    except (KeyError, TypeError):
        return ALL_RED


def advance(state: ControllerState, sensor: bool, durations=PHASE_DURATIONS, ceiling=None) -> ControllerState:
    """
    One tick of the state register.

    Duration check and transition both see the pre-tick state. The counter
    restarts on a phase change and otherwise counts up, saturating one below
    the longest configured duration.
    """
    satisfied = duration_satisfied(state.phase, state.elapsed, durations)
    target = next_phase(state.phase, satisfied, sensor)
    if target != state.phase:
        return ControllerState(target, 0)
    if ceiling is None:
        ceiling = max(durations.values()) - 1
    return ControllerState(state.phase, min(state.elapsed + 1, ceiling))


class PhaseController:
    """
    Holds the (phase, elapsed) register and advances it once per tick.
    """

    def __init__(self, durations=PHASE_DURATIONS):
        self.durations = validate_durations(durations)
        self.ceiling = max(self.durations.values()) - 1
        self._state = RESET_STATE

    @property
    def state(self) -> ControllerState:
        return self._state

    @state.setter
    def state(self, value):
        # Fault injection hook: stored as given, even an invalid phase.
        self._state = ControllerState(*value)

    @property
    def phase(self):
        return self._state.phase

    @property
    def elapsed(self) -> int:
        return self._state.elapsed

    @property
    def lights(self) -> LightState:
        return lights_for(self._state.phase)

    def reset(self):
        self._state = RESET_STATE

    def step(self, tick: bool = True, reset: bool = False, sensor: bool = False) -> LightState:
        """
        Evaluate one tick and return the lights driven during it.

        Reset wins over everything and takes effect immediately. Without reset,
        the returned lights belong to the phase held during this tick and the
        register commits the next state afterwards.
        """
        sample = bool(sensor)

        if reset:
            if self._state != RESET_STATE:
                logger.debug(f"Reset from {self._state}")
            self._state = RESET_STATE
            return lights_for(RESET_STATE.phase)

        current = self._state
        lights = lights_for(current.phase)
        if not tick:
            return lights

        new_state = advance(current, sample, self.durations, self.ceiling)
        if new_state.phase != current.phase:
            if isinstance(current.phase, Phase):
                logger.info(
                    f"{current.phase.name} -> {new_state.phase.name} "
                    f"(elapsed={current.elapsed}, sensor={sample})"
                )
            else:
                logger.warning(f"Invalid phase {current.phase!r}, forcing {new_state.phase.name}")
        self._state = new_state
        return lights


def run(sensor_values, controller=None):
    """
    Step once per sensor sample.
    Returns (state before the tick, lights shown during it) per tick.
    """
    controller = controller or PhaseController()
    trace = []
    for sensor in sensor_values:
        before = controller.state
        trace.append((before, controller.step(sensor=sensor)))
    return trace
