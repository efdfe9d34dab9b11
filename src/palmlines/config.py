# palmlines configuration

import os

# Primary line detector (Roboflow hosted inference)
ROBOFLOW_API_KEY = os.getenv("ROBOFLOW_API_KEY", "")
ROBOFLOW_API_URL = os.getenv("ROBOFLOW_API_URL", "https://detect.roboflow.com")
ROBOFLOW_MODEL = os.getenv("ROBOFLOW_MODEL", "palm-line-detection-9zzh0/1")

# Secondary vision detector (Gemini generateContent)
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
GEMINI_API_URL = os.getenv(
    "GEMINI_API_URL",
    "https://generativelanguage.googleapis.com/v1/models/gemini-2.5-pro:generateContent",
)
GEMINI_TEMPERATURE = float(os.getenv("GEMINI_TEMPERATURE", "0.1"))
GEMINI_MAX_OUTPUT_TOKENS = int(os.getenv("GEMINI_MAX_OUTPUT_TOKENS", "1024"))

DETECTOR_TIMEOUT_S = float(os.getenv("DETECTOR_TIMEOUT_S", "30"))

# Hand landmarker
HAND_LANDMARKER_MODEL_PATH = os.getenv("HAND_LANDMARKER_MODEL_PATH", "models/hand_landmarker.task")
MIN_DETECTION_CONFIDENCE = 0.5
MIN_TRACKING_CONFIDENCE = 0.5

PALMLINES_LOG_LEVEL = os.getenv("PALMLINES_LOG_LEVEL", "INFO")

# --- Tracking knobs ---
TRACKING_INTERVAL_MS = 50.0  # ~20 Hz
PALM_BOUNDS_PADDING = 0.2
OPEN_PALM_MIN_FINGERS = 3

# --- Fusion knobs ---
DEPTH_DEEP_THRESHOLD = 0.8
DEPTH_MEDIUM_THRESHOLD = 0.5
SYNTH_ARC_BOW = 0.02  # normalized bow of synthesized heart/head arcs
CROP_TO_PALM_BOUNDS = True
FILL_MISSING_TYPES = True
CAPTURE_JPEG_QUALITY = 92

# --- Reveal / rendering knobs ---
REVEAL_DURATION_MS = 2000.0
REVEAL_STAGGER = 0.15
REVEAL_RAMP = 0.4
CONFIDENCE_ALPHA_FLOOR = 0.6
LABEL_PROGRESS_THRESHOLD = 0.8
SMOOTH_SAMPLES_PER_SEGMENT = 12
