import os
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.dirname(os.path.dirname(__file__))

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///" + os.path.join(BASE_DIR, "quiz_portal.db"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))
REFRESH_TOKEN_EXPIRE_DAYS = int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7"))

GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID")
GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET")
GOOGLE_REDIRECT_URI = os.getenv("GOOGLE_REDIRECT_URI", "http://localhost:8000/auth/google/callback")
GOOGLE_TIMEOUT_SECONDS = float(os.getenv("GOOGLE_TIMEOUT_SECONDS", "10"))

ROLES = ["admin", "teacher", "student"]
STAFF_ROLES = ["admin", "teacher"]

# section code -> display name
SECTIONS = {
    "qa": "Quantitative Aptitude",
    "lr": "Logical Reasoning",
    "va": "Verbal Ability",
    "di": "Data Interpretation",
    "gk": "General Awareness",
}

# minutes
DEFAULT_SECTION_TIMERS = {
    "qa": 30,
    "lr": 25,
    "va": 35,
    "di": 20,
    "gk": 15,
}

QUESTION_TYPES = ["single", "multiple"]
QUIZ_STATUSES = ["draft", "published"]
AUDIENCES = ["all", "students", "teachers"]

PASS_THRESHOLD = 60  # percent
DEFAULT_PASSING_RATIO = 0.6
ACCESS_CODE_LENGTH = 6
