# -*- coding: utf-8 -*-

MIN_SESSION_DURATION_SECONDS = 1

TICK_INTERVAL_MS = 1000

# gap between heartbeat and boot below this is treated as brief backgrounding
BACKGROUND_DETECTION_THRESHOLD_MS = 3 * 60 * 1000

SECONDS_IN_DAY = 86400

# app_state keys
KEY_SESSIONS = "sessions"
KEY_ACTIVE_SESSION = "active_session"

GENERAL_PROJECT_NAME = "General"
PERSONAL_CLIENT_NAME = "Personal"
