"""Command-line front end for TrackPlay.

Every command prints JSON to stdout; logs and errors go to stderr.
"""

from __future__ import annotations

import argparse
import sys
from typing import Optional, Sequence

from trackplay import __version__
from trackplay.backend.application import TrackPlayApplication
from trackplay.backend.auth.consent import ConsentStep, LoopbackBrowserConsent, ManualConsent
from trackplay.backend.common.errors import TrackPlayError
from trackplay.backend.common.logging import init_logging
from trackplay.backend.information_handlers.links import stremio_link
from trackplay.backend.information_handlers.models import MediaType
from trackplay.config import settings

from ._utils import build_subparser, exit_with_error, print_json, require_subcommand, to_serializable


def _state_payload(app: TrackPlayApplication) -> dict:
    state = app.state
    return {"phase": state.phase.value, "signed_in": state.is_signed_in}


def _handle_login(app: TrackPlayApplication, args: argparse.Namespace) -> None:
    result = app.login()
    if not result.ok:
        exit_with_error(result.error_message or "login failed")
    print_json(_state_payload(app))


def _handle_logout(app: TrackPlayApplication, _: argparse.Namespace) -> None:
    app.logout()
    print_json(_state_payload(app))


def _handle_status(app: TrackPlayApplication, _: argparse.Namespace) -> None:
    print_json(_state_payload(app))


def _handle_refresh(app: TrackPlayApplication, _: argparse.Namespace) -> None:
    result = app.refresh()
    if not result.ok:
        exit_with_error(result.error_message or "refresh failed")
    print_json(_state_payload(app))


def _handle_history(app: TrackPlayApplication, _: argparse.Namespace) -> None:
    result = app.load_history()
    if not result.ok:
        exit_with_error(result.error_message or "history unavailable")
    print_json(to_serializable(result.data))


def _handle_recommendations(app: TrackPlayApplication, args: argparse.Namespace) -> None:
    result = app.load_recommendations(with_posters=not args.no_posters)
    if not result.ok:
        exit_with_error(result.error_message or "recommendations unavailable")

    payload = to_serializable(result.data)
    for key in ("movies", "shows"):
        for item in payload.get(key, []):
            item["link"] = stremio_link(item.get("imdb_id"), item["type"])
    print_json(payload)


def _handle_link(args: argparse.Namespace) -> None:
    print_json({"imdb_id": args.imdb_id, "link": stremio_link(args.imdb_id, MediaType(args.type))})


def _consent_step(args: argparse.Namespace) -> Optional[ConsentStep]:
    if getattr(args, "manual", False):
        return ManualConsent()
    timeout = getattr(args, "timeout", None)
    if timeout is not None:
        return LoopbackBrowserConsent(timeout_seconds=timeout)
    return None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="trackplay", description="Trakt watch history and recommendations")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", default=None, help="Override TRACKPLAY_LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command")
    require_subcommand(subparsers)

    login = build_subparser(subparsers, "login", help="Sign in to Trakt")
    login.add_argument("--manual", action="store_true", help="Paste the redirect URL instead of using a local listener")
    login.add_argument("--timeout", type=float, default=None, help="Seconds to wait for browser consent")
    login.set_defaults(func=_handle_login)

    build_subparser(subparsers, "logout", help="Sign out and forget stored tokens").set_defaults(func=_handle_logout)
    build_subparser(subparsers, "status", help="Show the session state").set_defaults(func=_handle_status)
    build_subparser(subparsers, "refresh", help="Exchange the stored refresh token").set_defaults(
        func=_handle_refresh
    )
    build_subparser(subparsers, "history", help="Show watch history").set_defaults(func=_handle_history)

    recommendations = build_subparser(subparsers, "recommendations", help="Show recommendations")
    recommendations.add_argument("--no-posters", action="store_true", help="Skip TMDb poster lookups")
    recommendations.set_defaults(func=_handle_recommendations)

    link = build_subparser(subparsers, "link", help="Print a Stremio deep link")
    link.add_argument("imdb_id")
    link.add_argument("--type", choices=[m.value for m in MediaType], default=MediaType.MOVIE.value)
    link.set_defaults(func=_handle_link, standalone=True)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    init_logging(args.log_level or settings.get_settings().log_level, stream=sys.stderr)

    if getattr(args, "standalone", False):
        args.func(args)
        return 0

    try:
        app = TrackPlayApplication(consent_step=_consent_step(args))
    except TrackPlayError as exc:
        exit_with_error(str(exc))

    try:
        app.start()
        args.func(app, args)
    except TrackPlayError as exc:
        exit_with_error(str(exc))
    finally:
        app.close()

    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
