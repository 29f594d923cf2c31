import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Tokens are issued by the auth service; this backend only verifies them.
SECRET_KEY = os.getenv("SECRET_KEY", "super-secret-key")
ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

DATA_DIR = Path(os.getenv("DATA_DIR", Path(__file__).parent / "data"))

# Tracking parameters
ARRIVAL_RADIUS_KM = float(os.getenv("ARRIVAL_RADIUS_KM", "0.1"))
DEFAULT_SPEED_KMH = float(os.getenv("DEFAULT_SPEED_KMH", "30"))
STOPPED_THRESHOLD_MINUTES = float(os.getenv("STOPPED_THRESHOLD_MINUTES", "5"))
DELAY_NOTIFY_MINUTES = float(os.getenv("DELAY_NOTIFY_MINUTES", "5"))
SPEED_HISTORY_SIZE = int(os.getenv("SPEED_HISTORY_SIZE", "15"))

BROADCAST_INTERVAL_SECONDS = float(os.getenv("BROADCAST_INTERVAL_SECONDS", "30"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
