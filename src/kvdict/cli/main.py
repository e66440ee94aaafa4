from __future__ import annotations

import argparse


def main() -> None:
    p = argparse.ArgumentParser(prog="kvdict", description="Remote dictionary service over Redis")
    sub = p.add_subparsers(dest="cmd", required=True)

    # serve
    from kvdict.cli.run_server import build_parser

    p_serve = sub.add_parser("serve", help="Run the dictionary server")
    build_parser(p_serve)
    p_serve.set_defaults(_entry="kvdict.cli.run_server")

    args = p.parse_args()

    if args._entry == "kvdict.cli.run_server":
        from kvdict.cli.run_server import main as _m

        argv: list[str] = []
        if args.debug:
            argv.append("--debug")
        if args.redis_url:
            argv += ["--redis", args.redis_url]
        if args.listen:
            argv += ["--listen", args.listen]
        if args.config:
            argv += ["--config", args.config]
        _m(argv)
        return

    raise SystemExit(2)


if __name__ == "__main__":
    main()
