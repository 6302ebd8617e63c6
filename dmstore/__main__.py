"""``python -m dmstore``: serve the message API with uvicorn."""

import argparse
import logging
import os

import uvicorn


def main() -> None:
    parser = argparse.ArgumentParser(prog="dmstore", description="Serve the direct message API.")
    parser.add_argument("--host", default=os.environ.get("HOST", "127.0.0.1"), help="bind address ($HOST)")
    parser.add_argument("--port", type=int, default=int(os.environ.get("PORT", "8000")), help="bind port ($PORT)")
    parser.add_argument("--log-level", default=os.environ.get("LOG_LEVEL", "INFO"), help="root log level ($LOG_LEVEL)")
    parser.add_argument("--reload", action="store_true", help="restart on source changes")
    args = parser.parse_args()

    level = args.log_level.upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    uvicorn.run("dmstore.main:app", host=args.host, port=args.port, reload=args.reload, log_level=level.lower())


if __name__ == "__main__":
    main()
