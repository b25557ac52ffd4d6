"""
bccdata/config.py
-----------------
Central configuration module. Loads all environment variables
from the .env file and exposes them as typed constants.
"""

import os
from dotenv import load_dotenv

load_dotenv()


# ── PostgreSQL ────────────────────────────────────────────
DB_HOST: str = os.getenv("DB_HOST", "localhost")
DB_PORT: int = int(os.getenv("DB_PORT", "5432"))
DB_NAME: str = os.getenv("DB_NAME", "bccdata")
DB_USER: str = os.getenv("DB_USER", "bccdata_user")
DB_PASS: str = os.getenv("DB_PASS", "")

DATABASE_URL: str = os.getenv(
    "DATABASE_URL",
    f"postgresql://{DB_USER}:{DB_PASS}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)

# ── Connection pool ───────────────────────────────────────
DB_POOL_MIN: int = int(os.getenv("DB_POOL_MIN", "1"))
DB_POOL_MAX: int = int(os.getenv("DB_POOL_MAX", "5"))

# ── SQL generation ────────────────────────────────────────
# Empty means "use the paramstyle of the connection's driver module".
DB_PARAMSTYLE: str = os.getenv("DB_PARAMSTYLE", "")
ROW_ID_COLUMN: str = os.getenv("ROW_ID_COLUMN", "id")
CREATED_DATE_COLUMN: str = os.getenv("CREATED_DATE_COLUMN", "createdDate")

# ── Logging ───────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
