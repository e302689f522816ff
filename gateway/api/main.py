"""
Server entrypoint for the synthesis gateway.

Architectural role:
- Configures process logging and serves `gateway.api.http_api:app` with
  uvicorn.

Usage:
    python -m gateway.api.main --host 0.0.0.0 --port 8000

Side effects:
- Settings (credentials, demo mode, timeout, CORS origin) are read once when
  the HTTP module is imported; restart the process to change them.
"""

import argparse
import logging
import os

import uvicorn

from gateway.providers.provider_config import env_flag


def main(argv=None):
    parser = argparse.ArgumentParser(prog="gateway-server", description="Serve the synthesis gateway.")
    parser.add_argument("--host", default=os.getenv("GATEWAY_HOST", "127.0.0.1"))
    parser.add_argument("--port", type=int, default=int(os.getenv("GATEWAY_PORT", "8000")))
    args = parser.parse_args(argv)

    level = logging.DEBUG if env_flag(os.getenv("DEBUG")) else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    # urllib3 prints full request URLs at DEBUG.
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    uvicorn.run("gateway.api.http_api:app", host=args.host, port=args.port)


if __name__ == "__main__":
    main()
