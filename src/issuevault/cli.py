"""issuevault CLI.

Subcommands:
  pull     -> write one file per issue in scope plus the status board
  push     -> send one file's title and body back to its issue
  cleanup  -> archive issue files that dropped out of scope
  open     -> print (and open) the issue URL of a synced file
  login    -> store a token for later runs
  logout   -> forget the stored token
  whoami   -> show which account the resolved token belongs to
"""

from __future__ import annotations

import argparse
import os
import webbrowser
from typing import Any

from .auth import (
    build_credential_store,
    ensure_login,
    fetch_login,
    resolve_auth,
)
from .config import DEFAULT_CONFIG_FILE, SyncConfig
from .errors import IssueVaultError
from .github_api import GitHubClient
from .orchestrator import cleanup, open_url, pull, push, vault_relative
from .runtime import execute_command, prepare_config, report_error
from .store import FileSystemStore

_MAX_HELP_WIDTH = 100


class _HelpFormatter(argparse.HelpFormatter):
    def __init__(self, prog: str) -> None:
        super().__init__(prog, max_help_position=30, width=_MAX_HELP_WIDTH)


class _FormatterArgumentParser(argparse.ArgumentParser):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("formatter_class", _HelpFormatter)
        super().__init__(*args, **kwargs)


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", default=DEFAULT_CONFIG_FILE)
    parser.add_argument("--vault", help="Override vault.root from the config")


def _build_parser() -> argparse.ArgumentParser:
    p = _FormatterArgumentParser(
        prog="issuevault", description="Sync GitHub Project issues with a markdown vault"
    )
    p.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress informational logging (env: ISSUEVAULT_QUIET=1)",
    )
    sub = p.add_subparsers(
        dest="cmd",
        required=True,
        parser_class=_FormatterArgumentParser,
        metavar="<command>",
    )

    pl = sub.add_parser("pull", help="Write issue files and the board from the project")
    _add_common(pl)
    pl.add_argument(
        "--archive",
        action="store_true",
        default=None,
        help="Archive issue files no longer in scope (default: sync.archive_on_pull)",
    )

    ps = sub.add_parser("push", help="Push one issue file's title and body to GitHub")
    _add_common(ps)
    ps.add_argument("file", help="Issue file (absolute, cwd-relative or vault-relative)")

    pc = sub.add_parser("cleanup", help="Archive issue files no longer in scope")
    _add_common(pc)

    po = sub.add_parser("open", help="Print and open the GitHub URL of an issue file")
    _add_common(po)
    po.add_argument("file")
    po.add_argument("--no-browser", action="store_true", help="Only print the URL")

    li = sub.add_parser("login", help="Store a personal access token")
    _add_common(li)
    li.add_argument("--token", required=True)
    li.add_argument("--username", help="Skip the GET /user lookup")

    lo = sub.add_parser("logout", help="Forget the stored token")
    _add_common(lo)

    wh = sub.add_parser("whoami", help="Show the account of the resolved token")
    _add_common(wh)
    return p


def _client(cfg: SyncConfig, token: str) -> GitHubClient:
    return GitHubClient(token=token, base_host=cfg.base_url, retry=cfg.retry)


def _cmd_pull(cfg: SyncConfig, args: argparse.Namespace) -> int:
    creds = build_credential_store(cfg)
    auth = resolve_auth(cfg, creds)
    vault = FileSystemStore(cfg.vault_root)
    result = pull(cfg, _client(cfg, auth.token), vault, auth, args.archive)
    if not args.quiet:
        message = f"[pull] synced {result.issue_count} issue(s)"
        if result.archived_count:
            message += f", {result.archived_count} archived"
        print(f"{message} -> {result.index_path}")
    return 0


def _cmd_push(cfg: SyncConfig, args: argparse.Namespace) -> int:
    auth = resolve_auth(cfg, build_credential_store(cfg))
    vault = FileSystemStore(cfg.vault_root)
    result = push(cfg, _client(cfg, auth.token), vault, vault_relative(cfg, args.file))
    if not args.quiet:
        print(f"[push] updated {result.repository}#{result.number}: {result.title}")
        if result.uploaded:
            print(f"[push] uploaded {result.uploaded} image(s)")
        if result.skipped:
            print(f"[push] skipped {result.skipped} image(s) (not found)")
    if result.images_warning:
        print(
            "[push] warning: local images found but no images.repo configured; "
            "they will not display on GitHub"
        )
    return 0


def _cmd_cleanup(cfg: SyncConfig, args: argparse.Namespace) -> int:
    creds = build_credential_store(cfg)
    auth = resolve_auth(cfg, creds)
    archived = cleanup(cfg, _client(cfg, auth.token), FileSystemStore(cfg.vault_root), auth)
    if not args.quiet:
        if archived:
            print(f"[cleanup] archived {archived} issue file(s)")
        else:
            print("[cleanup] nothing to archive")
    return 0


def _cmd_open(cfg: SyncConfig, args: argparse.Namespace) -> int:
    url = open_url(FileSystemStore(cfg.vault_root), vault_relative(cfg, args.file))
    print(url)
    if not args.no_browser:
        webbrowser.open(url)
    return 0


def _cmd_login(cfg: SyncConfig, args: argparse.Namespace) -> int:
    username = args.username or fetch_login(_client(cfg, args.token))
    build_credential_store(cfg).set(args.token, username)
    if not args.quiet:
        print(f"[login] stored token for {username} ({cfg.auth_store})")
    return 0


def _cmd_logout(cfg: SyncConfig, args: argparse.Namespace) -> int:
    build_credential_store(cfg).clear()
    if not args.quiet:
        print(f"[logout] removed stored token ({cfg.auth_store})")
    return 0


def _cmd_whoami(cfg: SyncConfig, args: argparse.Namespace) -> int:
    auth = resolve_auth(cfg, build_credential_store(cfg))
    login = ensure_login(auth, _client(cfg, auth.token))
    print(f"{login} (token from {auth.source})")
    return 0


def _build_handlers(args: argparse.Namespace, cfg: SyncConfig) -> dict[str, Any]:
    return {
        "pull": lambda: _cmd_pull(cfg, args),
        "push": lambda: _cmd_push(cfg, args),
        "cleanup": lambda: _cmd_cleanup(cfg, args),
        "open": lambda: _cmd_open(cfg, args),
        "login": lambda: _cmd_login(cfg, args),
        "logout": lambda: _cmd_logout(cfg, args),
        "whoami": lambda: _cmd_whoami(cfg, args),
    }


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "quiet", False) and os.environ.get("ISSUEVAULT_QUIET") == "1":
        args.quiet = True
    try:
        cfg = prepare_config(args)
    except IssueVaultError as exc:
        report_error(exc)
        return 1
    handler = _build_handlers(args, cfg).get(args.cmd)
    if handler is None:  # pragma: no cover - argparse enforces valid choices
        parser.print_help()
        return 1
    return execute_command(handler, args, args.cmd)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
