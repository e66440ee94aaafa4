from __future__ import annotations

import argparse
from pathlib import Path

from kvdict.backend.redis_store import RedisBackend
from kvdict.config import load_settings
from kvdict.dict.handler import DictHandler
from kvdict.dict.server import DictServer
from kvdict.log import configure_logging, get_logger


def build_parser(p: argparse.ArgumentParser | None = None) -> argparse.ArgumentParser:
    p = p or argparse.ArgumentParser(description="Remote dictionary service (protocol v3) backed by Redis.")
    p.add_argument("--debug", action="store_true", default=None, help="Switch to debug/development logging")
    p.add_argument("--redis", dest="redis_url", default=None, help="Redis URL")
    p.add_argument("--listen", default=None, help="Listen address (tcp://host:port or unix:///path)")
    p.add_argument("--config", default="", help="Optional path to a YAML config file")
    return p


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    log = get_logger("kvdict.main")

    try:
        s = load_settings(
            Path(args.config) if args.config else None,
            debug=args.debug,
            redis_url=args.redis_url,
            listen=args.listen,
        )
    except ValueError as e:
        configure_logging(False)
        log.error("Failed to load configuration", extra={"fields": {"error": str(e)}})
        raise SystemExit(1)

    configure_logging(s.debug)
    log.debug("Starting")

    try:
        backend = RedisBackend.from_url(s.redis_url, timeout_s=s.backend_timeout_s)
    except ValueError as e:
        log.error("Failed to parse Redis URL", extra={"fields": {"error": str(e)}})
        raise SystemExit(1)

    handler = DictHandler(
        backend,
        scan_count=s.scan_count,
        max_scan_rounds=s.max_scan_rounds,
        backend_timeout_s=s.backend_timeout_s,
    )
    server = DictServer(s.listen, handler)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        log.info("KeyboardInterrupt -> stopping")
        server.stop()
    except OSError as e:
        log.error("Failed to set up listener", extra={"fields": {"error": str(e), "address": str(s.listen)}})
        raise SystemExit(1)
    finally:
        backend.close()


if __name__ == "__main__":
    main()
