#!/usr/bin/env python3
"""
traffic_controller.py
Smart Intersection Controller for Nvidia Jetson.

Configuration (environment):
- INTERSECTION_GPIO_BACKEND: jetson (default), gpiod or dry-run
- INTERSECTION_FLAG_PATH: shared detection file written by yolo_detect.py
- INTERSECTION_LOG_LEVEL: DEBUG, INFO, ...
- INTERSECTION_LAMP_TEST: 1 to walk every lamp state before starting

Demand: YOLO detection (confirmed over several ticks) OR pedestrian button,
latched until the side street gets its green.
"""

import logging
import os
import time

from errors import HardwareError, IntersectionError
from lights import PIN_BUTTON, JetsonPanel, open_panel
from log import setup_logger
from phase_controller import Phase, PhaseController, lights_for
from sensors import (
    YOLO_FLAG_PATH,
    AnySensor,
    ButtonSensor,
    ConfirmedSensor,
    DetectionFlagSensor,
    LatchedSensor,
)

logger = logging.getLogger(__name__)

# -------------------------
# TIMING PARAMETERS (seconds)
# -------------------------
TICK_SECONDS = 0.1      # 50 ticks of main green = 5 s
LAMP_TEST_DWELL = 1.0


class Intersection:
    """
    Ties the phase controller to a lamp panel and a demand sensor
    and runs it at a fixed tick rate.
    """

    def __init__(self, controller, panel, sensor, tick_seconds=TICK_SECONDS,
                 clock=time.monotonic, sleep=time.sleep):
        self.controller = controller
        self.panel = panel
        self.sensor = sensor
        self.tick_seconds = tick_seconds
        self.clock = clock
        self.sleep = sleep

    def tick(self):
        demand = self.sensor.read()
        lights = self.controller.step(sensor=demand)
        self.panel.show(lights)

        # Side street is being served; later requests start a new cycle.
        if self.controller.phase is Phase.MINOR_GREEN and hasattr(self.sensor, "clear"):
            self.sensor.clear()
        return lights

    def run(self, max_ticks=None):
        """Tick until interrupted (or max_ticks). Lamps end Red/Red."""
        ticks = 0
        deadline = self.clock()
        logger.info("Controller started. Waiting for minor road demand...")
        try:
            while max_ticks is None or ticks < max_ticks:
                self.tick()
                ticks += 1

                deadline += self.tick_seconds
                delay = deadline - self.clock()
                if delay > 0:
                    self.sleep(delay)
                else:
                    logger.warning(f"Tick overran by {-delay:.3f}s")
                    deadline = self.clock()
        except KeyboardInterrupt:
            logger.info("Shutdown requested")
        finally:
            self.panel.close()
            logger.info(f"Cleanup complete after {ticks} ticks")
        return ticks


def lamp_test(panel, dwell=LAMP_TEST_DWELL, sleep=time.sleep):
    """Show every phase's lamp state in turn, then Red/Red."""
    for phase in Phase:
        lights = lights_for(phase)
        logger.info(f"Lamp test {phase.name}: main {lights.main.name}, side {lights.minor.name}")
        panel.show(lights)
        sleep(dwell)
    panel.all_red()


def build_sensor(panel, flag_path):
    sensors = [LatchedSensor(ConfirmedSensor(DetectionFlagSensor(flag_path)), name="Vehicle")]
    if isinstance(panel, JetsonPanel):
        try:
            button = ButtonSensor(panel.gpio, PIN_BUTTON)
        except (OSError, RuntimeError, ValueError) as e:
            raise HardwareError(f"Could not set up button on pin {PIN_BUTTON}: {e}") from e
        sensors.append(LatchedSensor(button, name="Pedestrian button"))
    return AnySensor(*sensors)


def main():
    setup_logger(level=os.environ.get("INTERSECTION_LOG_LEVEL", "INFO"))
    backend = os.environ.get("INTERSECTION_GPIO_BACKEND", "jetson")
    flag_path = os.environ.get("INTERSECTION_FLAG_PATH", YOLO_FLAG_PATH)

    try:
        panel = open_panel(backend)
    except IntersectionError as e:
        logger.error(str(e))
        return 1

    # Lamps end Red/Red and the GPIO is released whatever happens below.
    with panel:
        try:
            sensor = build_sensor(panel, flag_path)
        except IntersectionError as e:
            logger.error(str(e))
            return 1

        if os.environ.get("INTERSECTION_LAMP_TEST") == "1":
            try:
                lamp_test(panel)
            except KeyboardInterrupt:
                logger.info("Lamp test interrupted")
                return 0

        Intersection(PhaseController(), panel, sensor).run()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
