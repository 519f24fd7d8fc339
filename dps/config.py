import os

from dotenv import load_dotenv

load_dotenv()

DATABASE_PATH = os.getenv("DATABASE_PATH", "dps.db")

DATABASE_URL = os.getenv("DATABASE_URL", "")
DATABASE_MAX_CONNECTIONS = int(os.getenv("DATABASE_MAX_CONNECTIONS", "5"))
SEED_DEMO_PATIENTS = os.getenv("SEED_DEMO_PATIENTS", "false").lower() in ("1", "true", "yes", "on")

# Report branding fallback when no header info has been configured
COMPANY_NAME = os.getenv("COMPANY_NAME", "SERVICE DE SECOURS")

# Ephemeral UI state limits
CHECKLIST_HISTORY_LIMIT = int(os.getenv("CHECKLIST_HISTORY_LIMIT", "50"))
NOTIFICATION_HISTORY_LIMIT = int(os.getenv("NOTIFICATION_HISTORY_LIMIT", "50"))
