#!/usr/bin/env python3
"""sctui CLI entrypoint."""

import argparse
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path

from sctui.api.client import PAGE_SIZE, ShortcutClient
from sctui.api.errors import ApiError
from sctui.api.models import STORY_TYPES
from sctui.commands import add as cmd_add_module
from sctui.commands import finish as cmd_finish_module
from sctui.commands import show as cmd_show_module
from sctui.core.dispatcher import Dispatcher
from sctui.core.model import RecordModel
from sctui.core.pagination import PaginationEngine, PaginationState
from sctui.core.workers import WorkerPool
from sctui.lib.config import (
    DEFAULT_LIMIT,
    EXAMPLE_CONFIG,
    TOKEN_ENV_VAR,
    ConfigError,
    WorkspaceConfig,
    load_config,
    resolve_config_path,
    workspace_from_token,
)
from sctui.tui.app import BoardApp

VERSION = "0.1.0"
DEFAULT_LOG_FILE = Path("~/.cache/sctui/sctui.log")

logger = logging.getLogger(__name__)


def setup_logging(log_file: str | None, debug: bool) -> Path:
    """Send logs to a file; the terminal belongs to the board."""
    path = Path(log_file).expanduser() if log_file else DEFAULT_LOG_FILE.expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=path,
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return path


def build_query(args, user_id: str) -> str:
    """Search query from the view flags.

    An explicit --search wins. Otherwise filter by owner (default),
    requester, or nothing for --all, then by type, and always is:story.
    """
    if args.search:
        return args.search

    parts = []
    if not args.all and user_id:
        field = "requester" if args.requester else "owner"
        parts.append(f"{field}:{user_id}")
    if args.story_type:
        parts.append(f"type:{args.story_type}")
    parts.append("is:story")
    return " ".join(parts)


def resolve_workspace(args) -> WorkspaceConfig:
    """--token / $SHORTCUT_API_TOKEN, else the config file."""
    token = args.token or os.environ.get(TOKEN_ENV_VAR)
    if token:
        return workspace_from_token(token, limit=args.limit or DEFAULT_LIMIT)

    config = load_config(resolve_config_path(args.config))
    workspace = config.workspace(args.workspace)
    if args.limit:
        workspace.limit = args.limit
    return workspace


@dataclass
class Session:
    """A connected workspace: its config, a client and the reference data."""
    workspace: WorkspaceConfig
    client: ShortcutClient
    model: RecordModel

    @property
    def user_id(self) -> str:
        me = self.model.current_member
        return self.workspace.user_id or (me.mention_name if me else "")


def connect(args) -> Session | None:
    """Resolve the workspace and load workflow states, members and epics.

    Prints the error and returns None when the config is unusable or
    Shortcut cannot be reached. Members and epics are optional.
    """
    try:
        workspace = resolve_workspace(args)
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        if e.path is not None and not e.path.exists():
            print(f"\nCreate {e.path} like:\n\n{EXAMPLE_CONFIG}", file=sys.stderr)
        return None

    client = ShortcutClient(workspace.api_key, page_size=min(workspace.limit, PAGE_SIZE))
    try:
        states = client.get_workflow_states()
        me = client.get_current_member()
    except ApiError as e:
        print(f"ERROR: Could not reach Shortcut: {e}", file=sys.stderr)
        return None

    try:
        members = client.get_members()
    except ApiError as e:
        logger.warning(f"[API] Member directory unavailable, owners shown as ids: {e}")
        members = []

    try:
        epics = client.get_epics()
    except ApiError as e:
        logger.warning(f"[API] Epics unavailable, epic field left empty: {e}")
        epics = []

    model = RecordModel(states, members=members, current_member=me, epics=epics)
    return Session(workspace, client, model)


def cmd_view(args) -> int:
    """Open the board."""
    log_path = setup_logging(args.log_file, args.debug)
    session = connect(args)
    if session is None:
        return 2

    workspace = session.workspace
    query = build_query(args, session.user_id)
    logger.info(f"Workspace {workspace.name}: query '{query}', limit {workspace.limit}")

    pagination = PaginationEngine(session.model, PaginationState(query=query))
    try:
        pagination.fill(session.client.search, workspace.limit)
    except ApiError as e:
        print(f"ERROR: Could not load stories: {e}", file=sys.stderr)
        return 2

    dispatcher = Dispatcher(session.model, pagination, session.client, WorkerPool())
    dispatcher.status = f"Loaded {len(session.model)} stories for '{query}'"

    app = BoardApp(dispatcher, workspace.name)
    app.run()
    logger.info(f"Board closed; log at {log_path}")
    return 0


def cmd_show(args) -> int:
    setup_logging(args.log_file, args.debug)
    session = connect(args)
    if session is None:
        return 2
    query = build_query(args, session.user_id)
    return cmd_show_module.cmd_show(args, session.client, session.model, query)


def cmd_add(args) -> int:
    setup_logging(args.log_file, args.debug)
    session = connect(args)
    if session is None:
        return 2
    return cmd_add_module.cmd_add(args, session.client, session.model)


def cmd_finish(args) -> int:
    setup_logging(args.log_file, args.debug)
    session = connect(args)
    if session is None:
        return 2
    return cmd_finish_module.cmd_finish(args, session.client, session.model)


def cmd_comment(args) -> int:
    setup_logging(args.log_file, args.debug)
    session = connect(args)
    if session is None:
        return 2
    return cmd_finish_module.cmd_comment(args, session.client, session.model)


def cmd_version(args) -> int:
    print(f"sctui {VERSION}")
    return 0


def add_connection_arguments(parser: argparse.ArgumentParser, suppress: bool = False) -> None:
    """Workspace and logging flags.

    Subcommands repeat these with suppress=True so a flag given before the
    subcommand name is not reset by the subparser's defaults.
    """
    default = argparse.SUPPRESS if suppress else None
    parser.add_argument('--workspace', '-w', default=default, help='Workspace name from config.yaml')
    parser.add_argument('--config', default=default, help='Path to config.yaml')
    parser.add_argument('--token', default=default,
                        help=f'Shortcut API token (default: ${TOKEN_ENV_VAR}); bypasses config')
    parser.add_argument('--log-file', default=default, help=f'Log file (default: {DEFAULT_LOG_FILE})')
    parser.add_argument('--debug', action='store_true', default=argparse.SUPPRESS if suppress else False,
                        help='Debug logging')


def add_filter_arguments(parser: argparse.ArgumentParser, suppress: bool = False) -> None:
    """Flags that pick which stories are loaded."""
    default = argparse.SUPPRESS if suppress else None
    flag_default = argparse.SUPPRESS if suppress else False
    parser.add_argument('--search', '-s', default=default, help='Raw Shortcut search query (overrides filters)')
    parser.add_argument('--limit', '-l', type=int, default=default,
                        help='Stories to load at startup (show: stories per screen)')
    parser.add_argument('--story-type', '-t', choices=STORY_TYPES, default=default,
                        help='Only stories of this type')
    who = parser.add_mutually_exclusive_group()
    who.add_argument('--all', '-a', action='store_true', default=flag_default,
                     help='All stories, regardless of owner')
    who.add_argument('--owner', '-o', action='store_true', default=flag_default,
                     help='Stories you own (default)')
    who.add_argument('--requester', '-r', action='store_true', default=flag_default,
                     help='Stories you requested')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='sctui', description='Terminal board for Shortcut stories')
    add_connection_arguments(parser)
    add_filter_arguments(parser)
    parser.set_defaults(func=cmd_view)
    subparsers = parser.add_subparsers(dest='command')

    # sctui view
    p_view = subparsers.add_parser('view', help='Open the story board (default)')
    add_connection_arguments(p_view, suppress=True)
    add_filter_arguments(p_view, suppress=True)
    p_view.set_defaults(func=cmd_view)

    # sctui show
    p_show = subparsers.add_parser('show', help='Print matching stories without the board')
    add_connection_arguments(p_show, suppress=True)
    add_filter_arguments(p_show, suppress=True)
    p_show.set_defaults(func=cmd_show)

    # sctui add
    p_add = subparsers.add_parser('add', help='Create a story')
    add_connection_arguments(p_add, suppress=True)
    p_add.add_argument('name', nargs='+', help='Story name')
    p_add.add_argument('--type', choices=STORY_TYPES, default='feature', help='Story type (default: feature)')
    p_add.add_argument('--description', '-d', help='Story description')
    p_add.add_argument('--epic', type=int, help='Epic id to file the story under')
    p_add.set_defaults(func=cmd_add)

    # sctui finish
    p_finish = subparsers.add_parser('finish', help='Move a story to the done state')
    add_connection_arguments(p_finish, suppress=True)
    p_finish.add_argument('story_id', type=cmd_finish_module.parse_story_id, help='Story id (42 or sc-42)')
    p_finish.set_defaults(func=cmd_finish)

    # sctui comment
    p_comment = subparsers.add_parser('comment', help='Comment on a story')
    add_connection_arguments(p_comment, suppress=True)
    p_comment.add_argument('story_id', type=cmd_finish_module.parse_story_id, help='Story id (42 or sc-42)')
    p_comment.add_argument('--message', '-m', required=True, help='Comment text')
    p_comment.set_defaults(func=cmd_comment)

    # sctui version
    p_version = subparsers.add_parser('version', help='Show version')
    p_version.set_defaults(func=cmd_version)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.limit is not None and args.limit < 1:
        parser.error('--limit must be at least 1')
    return args.func(args)


if __name__ == '__main__':
    sys.exit(main())
