"""
Configuration settings for the Face Identity & Emotion Analytics service
"""
import os

from app import __version__

# =============================================================================
# Descriptor Matching
# =============================================================================

# Length of the face descriptors produced by the upstream landmark/recognition
# network. Every descriptor in the store and every probe must have this size.
EMBEDDING_DIM = int(os.getenv("EMBEDDING_DIM", "128"))

# Euclidean distance threshold. A candidate must be strictly closer than this
# to be accepted. Typical values for 128-d descriptors:
# - Strict: 0.5
# - Normal: 0.6
# - Relaxed: 0.7
RECOGNITION_THRESHOLD = float(os.getenv("RECOGNITION_THRESHOLD", "0.6"))

# Nearest candidates returned alongside a recognition decision
TOP_K_MATCHES = int(os.getenv("TOP_K_MATCHES", "3"))

# =============================================================================
# Emotion Analytics
# =============================================================================

# A sample is a key moment when its strongest expression reaches this value
KEY_MOMENT_THRESHOLD = 0.7

# The playback timeline is always split into this many equal segments
TIMELINE_SEGMENTS = 10

# Width of the buckets used for minute-by-minute trends
TREND_INTERVAL_SECONDS = 60.0

# Steepness of the sigmoid used by the optional live-capture smoothing
SMOOTHING_STEEPNESS = 12.0

# =============================================================================
# Database Configuration
# =============================================================================

# In-memory SQLite keeps the attendance log for the process lifetime.
# Point this at PostgreSQL (postgresql+asyncpg://...) for a durable log.
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite://")
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "5"))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "10"))

# =============================================================================
# Logging
# =============================================================================
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# =============================================================================
# API Configuration
# =============================================================================
API_TITLE = "Face Identity & Emotion Analytics API"
API_DESCRIPTION = """
Facial identity matching and emotion analytics over vectors produced by an
external inference layer.

## Features
- **Register Face**: Enroll a named 128-d face descriptor
- **Recognize Face**: Match a descriptor against enrolled identities
- **Attendance**: Audit log of registrations and recognitions
- **Emotion Sessions**: Collect per-frame emotion probabilities and retrieve
  summaries, timelines, trends, key moments and reports

## Matching
- **Metric**: Euclidean distance, linear scan
- **Acceptance**: distance strictly below the threshold (default 0.6)
- **Confidence**: 1 - distance / threshold
"""
API_VERSION = __version__
