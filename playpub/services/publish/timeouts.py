from __future__ import annotations

# Local SDK tools (aapt2 dump badging)
AAPT_TIMEOUT_SECONDS = 60.0

# gcloud auth print-access-token (may refresh a token over the network)
GCLOUD_TIMEOUT_SECONDS = 30.0
