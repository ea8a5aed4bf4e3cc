"""
WhatsApp AI Bridge - Server Entry Point
=======================================

Run this to start the bridge and its dashboard:
    python main.py

Then open http://127.0.0.1:3000 in your browser and scan the QR code.

Logging out from the dashboard stops the process; run it under a
supervisor (systemd, docker restart policy) so it comes back up.
"""

import uvicorn

from wabridge.infrastructure.config import configure_logging, get_settings


def main():
    """Start the web server."""
    settings = get_settings()
    configure_logging(settings.server.log_level)

    print("\n" + "=" * 50)
    print("   WhatsApp AI Bridge")
    print("=" * 50)
    print(f"\n   Starting server at http://{settings.server.host}:{settings.server.port}")
    print("   Press Ctrl+C to stop\n")

    uvicorn.run(
        "wabridge.web.app:create_app",
        factory=True,
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.server.log_level.lower(),
    )


if __name__ == "__main__":
    main()
