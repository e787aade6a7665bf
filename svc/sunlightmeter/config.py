from __future__ import annotations
import os

# Service mode: "sim" for the built in simulated sensor or "real" for a TSL2591 on I2C
MODE = os.getenv("SVC_MODE", "sim").lower()

# I2C bus number (/dev/i2c-1 is the default bus on a Raspberry Pi)
I2C_BUS = int(os.getenv("SLM_I2C_BUS", "1"))

# Sensor settings applied at the startup probe
INITIAL_GAIN = os.getenv("SLM_GAIN", "low").lower()
INITIAL_INTEGRATION_MS = int(os.getenv("SLM_INTEGRATION_MS", "300"))

# Sampling job timing
RECORD_INTERVAL_SECONDS = float(os.getenv("SLM_RECORD_INTERVAL_SECONDS", "30"))
MAX_JOB_DURATION_SECONDS = float(os.getenv("SLM_MAX_JOB_DURATION_SECONDS", str(8 * 60 * 60)))

# Seconds to wait per integration step before a channel read
SETTLE_STEP_SECONDS = float(os.getenv("SLM_SETTLE_STEP_SECONDS", "0.2"))

# Bound on samples waiting for the recorder; producers block when it is full
SAMPLE_QUEUE_SIZE = int(os.getenv("SLM_SAMPLE_QUEUE_SIZE", "64"))

# Simulated light level (counts per 100ms at 1x gain) used in sim mode
SIM_FULL_RATE = float(os.getenv("SLM_SIM_FULL_RATE", "400"))
SIM_IR_RATE = float(os.getenv("SLM_SIM_IR_RATE", "80"))

# Path for the results database
# Get the svc directory (parent of the package directory where this file lives)
_SVC_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
DATA_DIR = os.getenv("SVC_DATA_DIR", "data")
DB_FILE = os.path.join(_SVC_DIR, DATA_DIR, "sunlightmeter.db")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "info").upper()
LOG_FILE = os.getenv("SLM_LOG_FILE", "")

# Comma separated origins allowed to call the API from a browser dashboard
CORS_ORIGINS = [
    o.strip()
    for o in os.getenv("SLM_CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173").split(",")
    if o.strip()
]
