"""
gptbridge Constants

Shared constants used across the codebase.
"""

APP_NAME = "GPT-trainer Chat Bridge"

# Default timeout for GPT-trainer requests (seconds)
DEFAULT_HTTP_TIMEOUT = 60.0

# The streaming-shaped endpoint gets this multiple of the base timeout
STREAM_TIMEOUT_MULTIPLIER = 2

# Automation server defaults
DEFAULT_RETRY_COUNT = 3
DEFAULT_RETRY_DELAY = 1.0
DEFAULT_POLL_INTERVAL = 2.0
DEFAULT_MAX_WAIT = 300.0

# Session defaults (seconds)
DEFAULT_MAX_IDLE_TIME = 24 * 60 * 60
DEFAULT_CLEANUP_INTERVAL = 60 * 60

# Name of the generic automation function exposed to the AI
GENERIC_AUTOMATION_FUNCTION = "callAgent"

# User-facing placeholders
NO_RESPONSE_TEXT = "I'm sorry, I couldn't generate a response at this time. Please try again later."
UNAVAILABLE_TEXT = (
    "I'm sorry, I'm having trouble connecting to my knowledge base right now. "
    "The team has been notified and is working on a fix. In the meantime, "
    "please try again later or ask a different question."
)
SESSION_RESET_TEXT = "Started a new conversation. What can I help you with?"

# Chat commands that start a fresh session
RESET_COMMANDS = ("/reset", "/new")
