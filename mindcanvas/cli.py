"""Headless command line access to MindCanvas.

Uses the same stored login session as the desktop app.

Usage:
  mindcanvas-cli login --email me@example.com
  mindcanvas-cli list
  mindcanvas-cli export --format md --out map.md [--id MAP_ID]
  mindcanvas-cli delete MAP_ID --yes
  mindcanvas-cli logout

Configuration comes from MINDCANVAS_* environment variables.
"""

import argparse
import asyncio
import getpass
import sys
from pathlib import Path
from typing import Optional, List

import httpx

from mindcanvas.auth import AuthClient, AuthError
from mindcanvas.config import ClientConfig, setup_logging
from mindcanvas.database import Database, get_db_path
from mindcanvas.export import MindMapExporter, get_export_dir
from mindcanvas.gateway import MindMapGateway, ResultStatus
from mindcanvas.graph import GraphStore
from mindcanvas.session import SessionManager

EXPORT_SUFFIXES = {"md": ".md", "png": ".png", "svg": ".svg"}


class CliContext:
    """Wiring shared by every subcommand."""

    def __init__(self, config: ClientConfig, db: Database,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self.db = db
        self.transport = transport
        self.sessions = SessionManager(db)
        self.sessions.restore()
        self.store = GraphStore()

    def gateway(self) -> MindMapGateway:
        return MindMapGateway(self.store, self.sessions, self.config, transport=self.transport)


def _err(message: str) -> None:
    sys.stderr.write(message + "\n")


async def _login(ctx: CliContext, email: str, password: str) -> int:
    client = AuthClient(ctx.config, transport=ctx.transport)
    try:
        session = await client.sign_in(email, password)
    except AuthError as exc:
        _err(f"Login failed: {exc}")
        return 1
    ctx.sessions.begin(session)
    print(f"Logged in as {session.email or session.user_id}")
    return 0


def _cmd_login(ctx: CliContext, args: argparse.Namespace) -> int:
    email = args.email or input("E-mail: ").strip()
    password = args.password if args.password is not None else getpass.getpass("Password: ")
    return asyncio.run(_login(ctx, email, password))


def _cmd_logout(ctx: CliContext, args: argparse.Namespace) -> int:
    if ctx.sessions.current is None:
        print("Not logged in")
        return 0
    ctx.sessions.end("logout")
    print("Logged out")
    return 0


async def _list(ctx: CliContext) -> int:
    gateway = ctx.gateway()
    try:
        result = await gateway.list_maps()
    finally:
        await gateway.aclose()

    if not result.ok:
        _err(result.message)
        return 1
    if not result.maps:
        print("No mind maps yet")
        return 0
    for summary in result.maps:
        print(f"{summary.id}\t{summary.updated_at or '-'}\t{summary.title}")
    return 0


def _cmd_list(ctx: CliContext, args: argparse.Namespace) -> int:
    return asyncio.run(_list(ctx))


async def _export(ctx: CliContext, map_id: Optional[str], fmt: str, out: Path) -> int:
    gateway = ctx.gateway()
    try:
        result = await gateway.load(map_id)
    finally:
        await gateway.aclose()

    if result.status != ResultStatus.OK:
        _err(result.message)
        return 1

    exporter = MindMapExporter(ctx.store)
    if fmt == "md":
        ok = exporter.export_markdown(str(out))
    elif fmt == "png":
        ok = exporter.export_png(str(out))
    else:
        ok = exporter.export_svg(str(out))

    if not ok:
        _err("Nothing to export")
        return 1
    print(f"Wrote {out}")
    return 0


def _cmd_export(ctx: CliContext, args: argparse.Namespace) -> int:
    if args.out:
        out = Path(args.out).expanduser()
    else:
        out = get_export_dir(ctx.config.data_dir) / f"mindmap{EXPORT_SUFFIXES[args.format]}"
    return asyncio.run(_export(ctx, args.id, args.format, out))


async def _delete(ctx: CliContext, map_id: str) -> int:
    gateway = ctx.gateway()
    try:
        result = await gateway.delete_map(map_id)
    finally:
        await gateway.aclose()

    if not result.ok:
        _err(result.message)
        return 1
    print(result.message)
    return 0


def _cmd_delete(ctx: CliContext, args: argparse.Namespace) -> int:
    if not args.yes:
        answer = input(f"Delete mind map {args.map_id}? [y/N] ").strip().lower()
        if answer not in ("y", "yes"):
            print("Aborted")
            return 1
    return asyncio.run(_delete(ctx, args.map_id))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mindcanvas-cli")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_login = sub.add_parser("login", help="Log in and store the session")
    p_login.add_argument("--email", help="Account e-mail (prompted when omitted)")
    p_login.add_argument("--password", help="Password (prompted when omitted)")
    p_login.set_defaults(func=_cmd_login)

    p_logout = sub.add_parser("logout", help="Forget the stored session")
    p_logout.set_defaults(func=_cmd_logout)

    p_list = sub.add_parser("list", help="List your mind maps, most recent first")
    p_list.set_defaults(func=_cmd_list)

    p_exp = sub.add_parser("export", help="Export a mind map")
    p_exp.add_argument("--id", help="Map id (defaults to the most recently updated map)")
    p_exp.add_argument("--format", choices=sorted(EXPORT_SUFFIXES), default="md")
    p_exp.add_argument("--out", help="Output path (defaults to the exports folder)")
    p_exp.set_defaults(func=_cmd_export)

    p_del = sub.add_parser("delete", help="Delete a mind map on the server")
    p_del.add_argument("map_id")
    p_del.add_argument("--yes", action="store_true", help="Do not ask for confirmation")
    p_del.set_defaults(func=_cmd_delete)

    return parser


def main(argv: Optional[List[str]] = None,
         transport: Optional[httpx.AsyncBaseTransport] = None) -> int:
    args = build_parser().parse_args(argv)
    config = ClientConfig.from_env()
    setup_logging(config.log_level)

    db = Database(get_db_path(config.data_dir))
    try:
        ctx = CliContext(config, db, transport=transport)
        return int(args.func(ctx, args))
    finally:
        db.close()


if __name__ == "__main__":
    raise SystemExit(main())
