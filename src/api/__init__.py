# src/api/__init__.py
# =====================
# API Layer — Smart Listener
#
# Responsibility:
#   - Expose analyze / queue / viewed / clear / reset over HTTP
#   - Forward new-question and response-ready events to WEBHOOK_URL
#
# The FastAPI app lives in src.api.routes and is served by main.py.
