"""Centralized constants for WordMemory.

Scheduler multipliers and storage defaults live here so every layer
imports from a single source of truth.
"""

# ---------- New words ----------
INITIAL_DIFFICULTY = 5.0
INITIAL_STABILITY = 1.0  # days
INITIAL_RETRIEVABILITY = 1.0
INITIAL_DUE_DAYS = 1.0

# ---------- Scheduler bounds ----------
MIN_DIFFICULTY = 1.0
MAX_DIFFICULTY = 10.0
INPUT_DIFFICULTY_RANGE = (0.0, 10.0)
MIN_STABILITY = 0.01  # days
MAX_STABILITY = 36500.0  # days
MAX_INTERVAL_DAYS = 36500.0
AGAIN_MIN_STABILITY = 1.0

# ---------- Rating multipliers ----------
AGAIN_STABILITY_FACTOR = 0.5
AGAIN_DIFFICULTY_DELTA = 1.0
AGAIN_RELEARN_MINUTES = 10

HARD_STABILITY_FACTOR = 1.2
HARD_DIFFICULTY_DELTA = 0.5
HARD_INTERVAL_FACTOR = 0.8

GOOD_STABILITY_FACTOR = 2.0

EASY_STABILITY_FACTOR = 3.0
EASY_DIFFICULTY_DELTA = -0.5
EASY_INTERVAL_FACTOR = 1.5

# Elapsed time assumed when a word has never been reviewed.
FIRST_REVIEW_ELAPSED_DAYS = 1.0

# ---------- Backups ----------
DEFAULT_MAX_AUTO_BACKUPS = 50
DEFAULT_AUTO_BACKUP_INTERVAL_MS = 5 * 60 * 1000

# ---------- GitHub ----------
GITHUB_API_URL = "https://api.github.com"
GITHUB_VOCABULARY_PATH = "data/vocabulary.json"
REQUEST_TIMEOUT = 30.0

SECONDS_PER_DAY = 86400.0
