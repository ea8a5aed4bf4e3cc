# Application Layer
# =================
# Orchestration with no business rules of its own:
# - router: template short-circuit / AI fallback for each inbound message
# - bridge: session events -> connection state, notifier and router

from .router import MessageRouter
from .bridge import BridgeService, terminate_process
