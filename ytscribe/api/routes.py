from __future__ import annotations

# Re-export all functions from the split modules
from ytscribe.api.transcription_routes import start_transcription
from ytscribe.api.service_routes import (
    get_test_info, get_status, run_cleanup, server_error_body, check_ytdlp_available
)

# This module acts as a stable re-export aggregator for route callables to avoid duplicate imports
