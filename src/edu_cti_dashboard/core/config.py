"""
Central configuration constants for the EduThreat-CTI dashboard.

Supports environment variables for configuration:
- EDU_CTI_API_URL: Base URL of the EduThreat-CTI API (default: http://localhost:8000)
- EDU_CTI_REQUEST_TIMEOUT: HTTP timeout in seconds (default: 30)
- EDU_CTI_HTTP_MAX_RETRIES: Retries for failed API calls (default: 2)
- EDU_CTI_PER_PAGE: Incidents per page (default: 20)
- EDU_CTI_TIMELINE_MONTHS: Months shown on timeline charts (default: 24)
- EDU_CTI_LOG_LEVEL: Logging level (default: INFO)
- EDU_CTI_LOG_FILE: Log file path (default: console only)
"""

import os
from pathlib import Path
from typing import Optional

# ---- Upstream API ----

API_BASE_URL = os.getenv("EDU_CTI_API_URL", "http://localhost:8000").rstrip("/")

REQUEST_TIMEOUT_SECONDS = float(os.getenv("EDU_CTI_REQUEST_TIMEOUT", "30"))
HTTP_MAX_RETRIES = int(os.getenv("EDU_CTI_HTTP_MAX_RETRIES", "2"))
HTTP_BACKOFF_BASE = float(os.getenv("EDU_CTI_HTTP_BACKOFF_BASE", "1.5"))  # seconds

# ---- Pagination ----

DEFAULT_PER_PAGE = int(os.getenv("EDU_CTI_PER_PAGE", "20"))
MAX_PER_PAGE = 100  # the API rejects anything larger

# ---- View sizes ----

TIMELINE_MONTHS = int(os.getenv("EDU_CTI_TIMELINE_MONTHS", "24"))

DASHBOARD_COUNTRY_LIMIT = 15
DASHBOARD_ATTACK_TYPE_LIMIT = 12
DASHBOARD_RANSOMWARE_LIMIT = 12
RECENT_INCIDENTS_LIMIT = 10

MAP_COUNTRY_LIMIT = 50
ATTACKS_TYPE_LIMIT = 15
RANSOMWARE_FAMILY_LIMIT = 30
THREAT_ACTOR_LIMIT = 20

# Display truncation ("+N more")
REGION_CARD_COUNTRIES = 8
ACTOR_CARD_COUNTRIES = 6
ACTOR_CARD_FAMILIES = 3

# ---- Logging ----

LOG_LEVEL = os.getenv("EDU_CTI_LOG_LEVEL", "INFO")
_log_file = os.getenv("EDU_CTI_LOG_FILE")
LOG_FILE: Optional[Path] = Path(_log_file) if _log_file else None
