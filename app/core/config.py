# app/core/config.py
"""Environment-driven settings shared by the database, logging and analytics layers."""

import os
from dotenv import load_dotenv

load_dotenv()

# Config/log database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./analytics_config.db")

# Telemetry store the analytics queries run against
DATA_WAREHOUSE_URL = os.getenv("DATA_WAREHOUSE_URL", "sqlite:///./analytics_store.db")

APPLICATION_ID = os.getenv("APPLICATION_ID", "classroom-analytics")

# Overrides the dialect detected from the telemetry store engine
ANALYTICS_SQL_DIALECT = os.getenv("ANALYTICS_SQL_DIALECT", "")

ANALYTICS_MAX_LIMIT = int(os.getenv("ANALYTICS_MAX_LIMIT", "10000"))

ANALYTICS_DEV_MODE = os.getenv("ANALYTICS_DEV_MODE", "false").lower() == "true"

HOST = os.getenv("HOST", "127.0.0.1")
PORT = int(os.getenv("PORT", "8000"))
