"""
Runtime configuration for the concierge routing core.

Every value is read once from the environment (optionally seeded from a
.env file) and exposed as a module-level constant. Nothing here talks to
the network.
"""

import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# =============================================================================
# GENERATION BACKEND (Anthropic)
# =============================================================================

ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
MODEL_ID = os.getenv("ANTHROPIC_MODEL_ID", "claude-sonnet-4-5")
ROUTER_MODEL_ID = os.getenv("ROUTER_MODEL_ID", MODEL_ID)
TEMPERATURE = float(os.getenv("MODEL_TEMPERATURE", 0.7))  # Recommendations are generation, not parsing
MAX_TOKENS = int(os.getenv("MODEL_MAX_TOKENS", 2048))
TIMEOUT_SECONDS = float(os.getenv("MODEL_TIMEOUT_SECONDS", 30.0))

# Upper bound for one stage-2 generation call, including SDK retries.
# Set to 0 to disable.
GENERATION_TIMEOUT_SECONDS = float(os.getenv("GENERATION_TIMEOUT_SECONDS", 90.0))

# Maximum model <-> tool round trips for one router conversation turn
ROUTER_MAX_TOOL_ROUNDS = int(os.getenv("ROUTER_MAX_TOOL_ROUNDS", 5))

# =============================================================================
# EXECUTION RECORDS
# =============================================================================

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
EXECUTION_RECORD_TTL = int(os.getenv("EXECUTION_RECORD_TTL", 86400))  # 24 hours default

# =============================================================================
# LOGGING
# =============================================================================

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
