import logging

import pytest

import traffic_controller
from errors import HardwareError
from lights import JetsonPanel, RecordingPanel
from phase_controller import ALL_RED, Phase, PhaseController, lights_for
from sensors import AnySensor, LatchedSensor
from traffic_controller import Intersection, build_sensor, lamp_test


class FakeClock:
    def __init__(self, step=0.0):
        self.now = 0.0
        self.step = step
        self.sleeps = []

    def __call__(self):
        self.now += self.step
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def make_intersection(panel, sensor, clock=None):
    clock = clock or FakeClock()
    return Intersection(PhaseController(), panel, sensor, clock=clock, sleep=clock.sleep)


def test_run_keeps_fixed_rate(panel, make_sensor):
    clock = FakeClock()
    intersection = make_intersection(panel, make_sensor([], default=True), clock)

    assert intersection.run(max_ticks=60) == 60
    assert len(clock.sleeps) == 60
    assert all(s == pytest.approx(0.1) for s in clock.sleeps)
    assert panel.history == [
        lights_for(Phase.MAIN_GREEN),
        lights_for(Phase.MAIN_YELLOW),
        ALL_RED,
    ]
    assert panel.closed


def test_overrun_is_logged_without_sleeping(panel, make_sensor, caplog):
    caplog.set_level(logging.WARNING, logger="traffic_controller")
    clock = FakeClock(step=0.2)
    intersection = make_intersection(panel, make_sensor([]), clock)

    intersection.run(max_ticks=3)
    assert clock.sleeps == []
    assert "overran" in caplog.text


def test_keyboard_interrupt_leaves_lamps_red(panel):
    class Interrupting:
        reads = 0

        def read(self):
            self.reads += 1
            if self.reads == 3:
                raise KeyboardInterrupt
            return False

    intersection = make_intersection(panel, Interrupting())
    assert intersection.run() == 2
    assert panel.current == ALL_RED
    assert panel.closed


def test_latched_request_served_once(panel, make_sensor):
    sensor = LatchedSensor(make_sensor([True]))
    intersection = make_intersection(panel, sensor)

    for _ in range(200):
        intersection.tick()

    assert intersection.controller.phase is Phase.MAIN_GREEN
    assert sensor.latched is False
    assert panel.history == [lights_for(p) for p in (
        Phase.MAIN_GREEN,
        Phase.MAIN_YELLOW,
        Phase.MINOR_GREEN,
        Phase.MINOR_YELLOW,
        Phase.MAIN_GREEN,
    )]


def test_lamp_test_walks_every_phase(panel):
    sleeps = []
    lamp_test(panel, dwell=0.5, sleep=sleeps.append)
    assert panel.history == [lights_for(p) for p in Phase] + [ALL_RED]
    assert sleeps == [0.5] * 4


def test_build_sensor_without_button(tmp_path):
    sensor = build_sensor(RecordingPanel(), str(tmp_path / "flag"))
    assert isinstance(sensor, AnySensor)
    assert len(sensor.sensors) == 1
    assert sensor.read() is False


def test_build_sensor_adds_button_on_jetson(tmp_path, fake_gpio):
    sensor = build_sensor(JetsonPanel(gpio=fake_gpio), str(tmp_path / "flag"))
    assert len(sensor.sensors) == 2

    fake_gpio.input.return_value = 1
    assert sensor.read() is True


def test_main_dry_run(monkeypatch):
    ran = []
    monkeypatch.setenv("INTERSECTION_GPIO_BACKEND", "dry-run")
    monkeypatch.setattr(Intersection, "run", lambda self: ran.append(self) or 0)

    assert traffic_controller.main() == 0
    assert isinstance(ran[0].panel, RecordingPanel)


def test_main_unknown_backend(monkeypatch):
    monkeypatch.setenv("INTERSECTION_GPIO_BACKEND", "arduino")
    assert traffic_controller.main() == 1


def test_build_sensor_wraps_button_failure(tmp_path, fake_gpio):
    jetson = JetsonPanel(gpio=fake_gpio)
    fake_gpio.setup.side_effect = RuntimeError("button pin busy")
    with pytest.raises(HardwareError, match="button pin busy"):
        build_sensor(jetson, str(tmp_path / "flag"))


def test_main_releases_panel_when_button_fails(monkeypatch, fake_gpio):
    jetson = JetsonPanel(gpio=fake_gpio)
    fake_gpio.setup.side_effect = RuntimeError("button pin busy")
    monkeypatch.setenv("INTERSECTION_GPIO_BACKEND", "jetson")
    monkeypatch.setattr(traffic_controller, "open_panel", lambda backend: jetson)

    assert traffic_controller.main() == 1
    assert jetson.current == ALL_RED
    fake_gpio.cleanup.assert_called_once_with(list(jetson.pins))


def test_main_releases_panel_when_lamp_test_fails(monkeypatch, panel):
    def broken_lamp_test(p):
        raise RuntimeError("lamp driver fault")

    monkeypatch.setenv("INTERSECTION_GPIO_BACKEND", "dry-run")
    monkeypatch.setenv("INTERSECTION_LAMP_TEST", "1")
    monkeypatch.setattr(traffic_controller, "open_panel", lambda backend: panel)
    monkeypatch.setattr(traffic_controller, "lamp_test", broken_lamp_test)

    with pytest.raises(RuntimeError, match="lamp driver fault"):
        traffic_controller.main()
    assert panel.closed
    assert panel.current == ALL_RED
