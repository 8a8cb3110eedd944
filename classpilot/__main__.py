import argparse
import logging
import socket
import uvicorn
from classpilot.core.config import settings

log = logging.getLogger(__name__)


def find_available_port(start_port: int, host: str = "0.0.0.0", attempts: int = 100) -> int:
    """First port at or above ``start_port`` that can be bound."""
    for port in range(start_port, start_port + attempts):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            try:
                sock.bind((host, port))
            except OSError:
                continue
            return port
    raise RuntimeError(f"No free port in {start_port}-{start_port + attempts - 1}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Classroom attendance automation service")
    parser.add_argument("--host", default=settings.host, help="Host to bind to")
    parser.add_argument("--port", type=int, default=settings.port, help="Preferred port")
    args = parser.parse_args()

    from classpilot.main import app

    port = find_available_port(args.port, args.host)
    if port != args.port:
        log.info("Desired port %d was in use; using %d instead", args.port, port)
    uvicorn.run(app, host=args.host, port=port, log_config=None)


if __name__ == "__main__":
    main()
