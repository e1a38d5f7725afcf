import os
import signal
import sys
import traceback
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

# Load .env before reading settings
env_path = Path(__file__).resolve().parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


def _unhandled_exception(exc_type, exc_value, exc_tb):
    """Print unhandled exceptions so the supervisor log shows the cause before restart."""
    if exc_type is KeyboardInterrupt:
        sys.__excepthook__(exc_type, exc_value, exc_tb)
        return
    msg = "".join(traceback.format_exception(exc_type, exc_value, exc_tb))
    print("Unhandled exception (process will exit):\n" + msg, file=sys.stderr, flush=True)
    sys.__excepthook__(exc_type, exc_value, exc_tb)


if __name__ == "__main__":
    """
    Entry point for the Timin API server.
    """
    root_dir = os.path.dirname(os.path.abspath(__file__))
    sys.path.insert(0, root_dir)
    sys.excepthook = _unhandled_exception

    from timin.utils.config import load_settings

    settings = load_settings()
    environment = settings.app.environment
    host = settings.server.host
    port = settings.server.port
    workers = settings.server.workers if settings.app.is_production else 1

    print(f"Starting {settings.app.name} from {root_dir}...")
    print(f"Environment: {environment}")
    print(f"Timin server running at http://localhost:{port}")

    def signal_handler(sig, frame):
        print("\nShutdown signal received. Stopping server...")
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    if hasattr(signal, "SIGTERM"):
        signal.signal(signal.SIGTERM, signal_handler)

    try:
        uvicorn.run(
            "web.main:create_app",
            factory=True,
            host=host,
            port=port,
            workers=workers,
            reload=environment == "development",
            log_level="info" if settings.app.is_production else "debug",
        )
    except KeyboardInterrupt:
        print("\nShutdown complete.")
        sys.exit(0)
    except Exception as e:
        print(f"\nFatal error: {e}", file=sys.stderr)
        traceback.print_exc(file=sys.stderr)
        sys.exit(1)
