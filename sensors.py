"""
sensors.py
Minor road demand inputs. Every sensor has read() -> bool and is sampled
exactly once per controller tick.
"""

import logging
import os
import tempfile

logger = logging.getLogger(__name__)

YOLO_FLAG_PATH = "/tmp/side_detected.txt"
DETECTION_DELAY_TICKS = 10  # How long a car must be SEEN before it counts


def write_detection_flag(path, detected):
    """
    Writes status to a temp file then moves it over `path`
    so the controller never reads a half-written file.
    """
    content = "1" if detected else "0"
    directory = os.path.dirname(os.path.abspath(path))

    tmp = tempfile.NamedTemporaryFile(mode='w', delete=False, dir=directory)
    try:
        with tmp:
            tmp.write(content)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp.name, path)
    except BaseException:
        try:
            os.unlink(tmp.name)
        except FileNotFoundError:
            pass
        raise


class DetectionFlagSensor:
    """Reads the shared file written by yolo_detect.py."""

    def __init__(self, path=YOLO_FLAG_PATH):
        self.path = path

    def read(self):
        try:
            with open(self.path, "r") as f:
                return f.read().strip() == "1"
        except FileNotFoundError:
            return False
        except (OSError, UnicodeDecodeError) as e:
            logger.debug(f"Unreadable detection flag {self.path}: {e}")
            return False


class ButtonSensor:
    """Active-high push button (pull-down), Jetson.GPIO."""

    def __init__(self, gpio, pin):
        self.gpio = gpio
        self.pin = pin
        self.gpio.setup(pin, gpio.IN, pull_up_down=gpio.PUD_DOWN)

    def read(self):
        return self.gpio.input(self.pin) == self.gpio.HIGH


class ConfirmedSensor:
    """Reports True only after `ticks` consecutive True samples."""

    def __init__(self, inner, ticks=DETECTION_DELAY_TICKS):
        self.inner = inner
        self.ticks = ticks
        self.streak = 0

    def read(self):
        if self.inner.read():
            self.streak += 1
        else:
            self.streak = 0
        return self.streak >= self.ticks


class LatchedSensor:
    """Holds a momentary request until clear() is called."""

    def __init__(self, inner, name="request"):
        self.inner = inner
        self.name = name
        self.latched = False

    def read(self):
        if self.inner.read() and not self.latched:
            logger.info(f"{self.name} registered")
            self.latched = True
        return self.latched

    def clear(self):
        self.latched = False


class AnySensor:
    """OR of several sensors. All of them are sampled on every read."""

    def __init__(self, *sensors):
        self.sensors = sensors

    def read(self):
        return any([s.read() for s in self.sensors])

    def clear(self):
        for s in self.sensors:
            if hasattr(s, "clear"):
                s.clear()
