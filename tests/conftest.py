from unittest.mock import MagicMock

import pytest

from lights import RecordingPanel
from phase_controller import PhaseController


class ScriptedSensor:
    """Returns the given samples in order, then `default` forever."""

    def __init__(self, samples, default=False):
        self.samples = list(samples)
        self.default = default
        self.reads = 0

    def read(self):
        self.reads += 1
        if self.samples:
            return self.samples.pop(0)
        return self.default


@pytest.fixture
def controller():
    return PhaseController()


@pytest.fixture
def panel():
    return RecordingPanel()


@pytest.fixture
def make_sensor():
    return ScriptedSensor


@pytest.fixture
def fake_gpio():
    gpio = MagicMock(name="Jetson.GPIO")
    gpio.BOARD = "BOARD"
    gpio.OUT = "OUT"
    gpio.IN = "IN"
    gpio.PUD_DOWN = "PUD_DOWN"
    gpio.LOW = 0
    gpio.HIGH = 1
    gpio.input.return_value = 0
    return gpio
