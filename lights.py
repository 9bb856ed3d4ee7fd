"""
lights.py
Lamp outputs for the intersection.

Two hardware backends (Jetson.GPIO on BOARD pins, libgpiod on chip lines)
plus an in-memory panel for dry runs. Every panel goes Red/Red on close.
"""

import logging
import os

from errors import ConfigurationError, HardwareError
from phase_controller import ALL_RED, Light

logger = logging.getLogger(__name__)

# -------------------------
# PIN CONFIGURATION (Jetson.GPIO, BOARD numbering)
# -------------------------
PIN_MAIN_R = 15
PIN_MAIN_Y = 16
PIN_MAIN_G = 13

PIN_SIDE_R = 7
PIN_SIDE_Y = 11
PIN_SIDE_G = 12

PIN_BUTTON = 22

JETSON_PINS = (PIN_MAIN_R, PIN_MAIN_Y, PIN_MAIN_G, PIN_SIDE_R, PIN_SIDE_Y, PIN_SIDE_G)

# -------------------------
# LINE CONFIGURATION (libgpiod, Orin Nano)
# -------------------------
GPIO_CHIP = "/dev/gpiochip4"

LINE_MAIN_R = 102
LINE_MAIN_Y = 103
LINE_MAIN_G = 105

LINE_SIDE_R = 100
LINE_SIDE_Y = 79
LINE_SIDE_G = 78

GPIOD_LINES = (LINE_MAIN_R, LINE_MAIN_Y, LINE_MAIN_G, LINE_SIDE_R, LINE_SIDE_Y, LINE_SIDE_G)

BACKENDS = ("jetson", "gpiod", "dry-run")


def lamp_levels(lights):
    """(main R, Y, G, side R, Y, G) as 0/1 for a LightState."""
    levels = []
    for light in (lights.main, lights.minor):
        levels.extend(int(light is colour) for colour in (Light.RED, Light.YELLOW, Light.GREEN))
    return tuple(levels)


class LightPanel:
    """
    Base panel. Subclasses implement _write(levels).
    Levels are only written when they differ from what is already lit.
    """

    def __init__(self):
        self.current = None
        self.closed = False

    def show(self, lights):
        if lights == self.current:
            return
        self._write(lamp_levels(lights))
        self.current = lights

    def all_red(self):
        self.show(ALL_RED)

    def close(self):
        if self.closed:
            return
        try:
            self.all_red()
        finally:
            self.closed = True
            self._release()

    def _write(self, levels):
        raise NotImplementedError

    def _release(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class JetsonPanel(LightPanel):
    """Jetson.GPIO backend. Pass `gpio` to reuse an already imported module."""

    def __init__(self, gpio=None, pins=JETSON_PINS, model_override=None):
        super().__init__()
        if gpio is None:
            if model_override:
                os.environ["JETSON_MODEL_OVERRIDE"] = model_override
            import Jetson.GPIO as GPIO
            gpio = GPIO
        self.gpio = gpio
        self.pins = tuple(pins)

        self.gpio.setmode(self.gpio.BOARD)
        self.gpio.setwarnings(False)
        for p in self.pins:
            self.gpio.setup(p, self.gpio.OUT)
            self.gpio.output(p, self.gpio.LOW)

    def _write(self, levels):
        for pin, level in zip(self.pins, levels):
            self.gpio.output(pin, self.gpio.HIGH if level else self.gpio.LOW)

    def _release(self):
        self.gpio.cleanup(list(self.pins))


class GpiodPanel(LightPanel):
    """libgpiod v2 backend; all six lines in one request."""

    def __init__(self, chip=GPIO_CHIP, lines=GPIOD_LINES, gpiod_module=None):
        super().__init__()
        if gpiod_module is None:
            import gpiod
            import gpiod.line
            gpiod_module = gpiod
        self.gpiod = gpiod_module
        self.lines = tuple(lines)

        line = self.gpiod.line
        settings = self.gpiod.LineSettings(
            direction=line.Direction.OUTPUT,
            output_value=line.Value.INACTIVE,
        )
        self.request = self.gpiod.request_lines(
            chip,
            consumer="intersection",
            config={self.lines: settings},
        )

    def _write(self, levels):
        value = self.gpiod.line.Value
        self.request.set_values({
            offset: value.ACTIVE if level else value.INACTIVE
            for offset, level in zip(self.lines, levels)
        })

    def _release(self):
        self.request.release()


class RecordingPanel(LightPanel):
    """No hardware; keeps every LightState written."""

    def __init__(self):
        super().__init__()
        self.history = []
        self.levels = None

    def show(self, lights):
        if lights != self.current:
            logger.debug(f"Lamps -> main {lights.main.name}, side {lights.minor.name}")
            self.history.append(lights)
        super().show(lights)

    def _write(self, levels):
        self.levels = levels


def open_panel(backend, **kwargs):
    """Build the panel for a backend name, wrapping hardware failures."""
    if backend not in BACKENDS:
        raise ConfigurationError(f"Unknown GPIO backend {backend!r}, expected one of {BACKENDS}")
    if backend == "dry-run":
        return RecordingPanel()
    try:
        if backend == "jetson":
            return JetsonPanel(**kwargs)
        return GpiodPanel(**kwargs)
    except (ImportError, OSError, RuntimeError, ValueError) as e:
        raise HardwareError(f"Could not open {backend} panel: {e}") from e
