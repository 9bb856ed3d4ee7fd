#!/usr/bin/env python3
"""
yolo_detect.py
Minor road vehicle detector.

Runs YOLO on the side street camera and publishes '1'/'0' to the shared
detection file read by traffic_controller.py.
"""

import logging
import os
import time

import cv2
from ultralytics import YOLO

from log import setup_logger
from sensors import YOLO_FLAG_PATH, write_detection_flag

logger = logging.getLogger(__name__)

# --- CONFIGURATION ---
MODEL_PATH = os.environ.get("INTERSECTION_MODEL_PATH", "yolov8n.onnx")
CAMERA_INDEX = 0
CONFIDENCE_THRESHOLD = 0.45
FRAME_INTERVAL = 0.1

# COCO Class IDs: 2=car, 3=motorcycle, 5=bus, 7=truck
VEHICLE_CLASSES = (2, 3, 5, 7)

WINDOW_NAME = "Minor road detection"


def vehicle_present(results, classes=VEHICLE_CLASSES):
    """True if any box in any result has a vehicle class id."""
    for result in results:
        for box in result.boxes:
            if int(box.cls[0]) in classes:
                return True
    return False


def main(show=True):
    setup_logger(level=os.environ.get("INTERSECTION_LOG_LEVEL", "INFO"))
    flag_path = os.environ.get("INTERSECTION_FLAG_PATH", YOLO_FLAG_PATH)

    logger.info(f"Loading model: {MODEL_PATH}...")
    try:
        model = YOLO(MODEL_PATH, task='detect')
    except Exception as e:
        logger.error(f"Error loading model {MODEL_PATH}: {e}")
        return 1

    cap = cv2.VideoCapture(CAMERA_INDEX)
    if not cap.isOpened():
        logger.error(f"Could not open camera {CAMERA_INDEX}")
        return 1

    if show:
        cv2.namedWindow(WINDOW_NAME, cv2.WINDOW_NORMAL)
        cv2.resizeWindow(WINDOW_NAME, 1280, 720)

    logger.info("Starting detection loop. Press 'q' to quit.")
    last = None
    try:
        while True:
            ret, frame = cap.read()
            if not ret:
                logger.error("Failed to grab frame")
                break

            results = model(frame, verbose=False, conf=CONFIDENCE_THRESHOLD)
            detected = vehicle_present(results)
            write_detection_flag(flag_path, detected)
            if detected != last:
                logger.info(f"Minor road {'occupied' if detected else 'clear'}")
                last = detected

            if show:
                cv2.imshow(WINDOW_NAME, results[0].plot())
                if cv2.waitKey(1) & 0xFF == ord('q'):
                    break

            time.sleep(FRAME_INTERVAL)

    except KeyboardInterrupt:
        logger.info("Stopping...")
    finally:
        cap.release()
        if show:
            cv2.destroyAllWindows()
        # A stale '1' would keep pulling the main road out of green.
        write_detection_flag(flag_path, False)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
