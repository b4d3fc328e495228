# backend/rentline/cli/__main__.py
from __future__ import annotations

import argparse

from rentline.auth import mint_token
from rentline.cli.seed_demo import seed_demo


def main(argv: list[str] | None = None) -> None:
    p = argparse.ArgumentParser(prog="rentline")
    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("seed-demo", help="load the demo portfolio into the SQL store")

    mint = sub.add_parser("mint-token", help="print a bearer token for a user id")
    mint.add_argument("--user-id", required=True)
    mint.add_argument("--minutes", type=int, default=None)

    args = p.parse_args(argv)

    if args.command == "seed-demo":
        out = seed_demo()
        print({"ok": True, "created": out.created, "admin_id": out.admin_id, "counts": out.counts})
    elif args.command == "mint-token":
        print(mint_token(args.user_id, minutes=args.minutes))


if __name__ == "__main__":
    main()
