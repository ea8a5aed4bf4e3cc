# Presentation Layer
# ==================
# FastAPI dashboard, JSON API and WebSocket push channel.
