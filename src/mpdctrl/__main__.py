"""Command line entry point: ``python -m mpdctrl <command>``.

Exit codes: 0 on success, 1 if MPD rejected the command, 2 on
connection, protocol or configuration errors.
"""

import argparse
import logging
import sys
from collections.abc import Callable, Sequence

from mpdctrl.api.mpd import (
    ConfigError,
    MpdClient,
    MpdError,
    ServerError,
)
from mpdctrl.api.mpd.types import MpdStats, MpdStatus, MpdTrack
from mpdctrl.core.config import ConfigManager

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_SERVER_ERROR = 1
EXIT_FAILURE = 2


def _print_fields(obj: MpdStatus | MpdStats | MpdTrack) -> None:
    for name, value in vars(obj).items():
        print(f"{name}: {value}")


def _print_record(record: dict[str, str | bytes]) -> None:
    for key, value in record.items():
        if isinstance(value, bytes):
            print(f"{key}: <{len(value)} bytes>")
        else:
            print(f"{key}: {value}")


def _cmd_status(client: MpdClient, _: argparse.Namespace) -> None:
    _print_fields(client.status())


def _cmd_stats(client: MpdClient, _: argparse.Namespace) -> None:
    _print_fields(client.stats())


def _cmd_currentsong(client: MpdClient, _: argparse.Namespace) -> None:
    track = client.current_song()
    if track is None:
        print("No song loaded")
        return
    _print_fields(track)


def _cmd_clearerror(client: MpdClient, _: argparse.Namespace) -> None:
    client.clear_error()


def _cmd_play(client: MpdClient, args: argparse.Namespace) -> None:
    client.play(args.pos)


def _cmd_pause(client: MpdClient, args: argparse.Namespace) -> None:
    state = None if args.state is None else args.state == "1"
    client.pause(state)


def _cmd_stop(client: MpdClient, _: argparse.Namespace) -> None:
    client.stop()


def _cmd_next(client: MpdClient, _: argparse.Namespace) -> None:
    client.next()


def _cmd_previous(client: MpdClient, _: argparse.Namespace) -> None:
    client.previous()


def _cmd_setvol(client: MpdClient, args: argparse.Namespace) -> None:
    client.setvol(args.volume)


def _cmd_getvol(client: MpdClient, _: argparse.Namespace) -> None:
    volume = client.getvol()
    print("volume: n/a" if volume is None else f"volume: {volume}")


def _cmd_raw(client: MpdClient, args: argparse.Namespace) -> None:
    _print_record(client.command(" ".join(args.line)))


Handler = Callable[[MpdClient, argparse.Namespace], None]

_HANDLERS: dict[str, Handler] = {
    "status": _cmd_status,
    "stats": _cmd_stats,
    "currentsong": _cmd_currentsong,
    "clearerror": _cmd_clearerror,
    "play": _cmd_play,
    "pause": _cmd_pause,
    "stop": _cmd_stop,
    "next": _cmd_next,
    "previous": _cmd_previous,
    "setvol": _cmd_setvol,
    "getvol": _cmd_getvol,
    "raw": _cmd_raw,
}


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="mpdctrl",
        description="Send a command to a Music Player Daemon",
    )
    parser.add_argument("--host", default=None, help="MPD hostname or IP (env: MPD_HOST)")
    parser.add_argument("--port", type=int, default=None, help="TCP port (env: MPD_PORT)")
    parser.add_argument(
        "--timeout", type=float, default=None, help="timeout in seconds (env: MPD_TIMEOUT)",
    )
    parser.add_argument(
        "--strict", action="store_true", help="fail on unrecognised server output",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("status", help="show player status")
    sub.add_parser("stats", help="show database statistics")
    sub.add_parser("currentsong", help="show the current song")
    sub.add_parser("clearerror", help="clear the player error")
    play = sub.add_parser("play", help="start playback")
    play.add_argument("pos", nargs="?", type=int, default=None, help="playlist position")
    pause = sub.add_parser("pause", help="toggle, set (1) or clear (0) pause")
    pause.add_argument("state", nargs="?", choices=["0", "1"], default=None)
    sub.add_parser("stop", help="stop playback")
    sub.add_parser("next", help="skip to the next song")
    sub.add_parser("previous", help="skip to the previous song")
    setvol = sub.add_parser("setvol", help="set the volume")
    setvol.add_argument("volume", type=int, help="volume 0-100")
    sub.add_parser("getvol", help="show the volume")
    raw = sub.add_parser("raw", help="send a raw command line")
    raw.add_argument("line", nargs="+", help="command and arguments, sent verbatim")
    sub.add_parser("save-defaults", help="persist --host/--port/--timeout as defaults")
    return parser


def _save_defaults(config: ConfigManager, args: argparse.Namespace) -> None:
    if args.host is not None:
        config.set_mpd_host(args.host)
    if args.port is not None:
        config.set_mpd_port(args.port)
    if args.timeout is not None:
        config.set_mpd_timeout(args.timeout)
    config.sync()
    logger.info("Saved MPD defaults")


def main(argv: Sequence[str] | None = None, config: ConfigManager | None = None) -> int:
    """Run the mpdctrl command line.

    Args:
        argv: Arguments without the program name (defaults to sys.argv[1:]).
        config: Persisted settings (defaults to the user's QSettings).

    Returns:
        Exit code.
    """
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = config or ConfigManager()

    try:
        if args.command == "save-defaults":
            _save_defaults(config, args)
            return EXIT_OK

        client = MpdClient(
            args.host, args.port, args.timeout, strict=args.strict, stored=config
        )
        with client:
            _HANDLERS[args.command](client, args)
    except ServerError as e:
        print(f"mpdctrl: {e}", file=sys.stderr)
        return EXIT_SERVER_ERROR
    except (ConfigError, ValueError) as e:
        print(f"mpdctrl: invalid argument: {e}", file=sys.stderr)
        return EXIT_FAILURE
    except MpdError as e:
        print(f"mpdctrl: {e}", file=sys.stderr)
        return EXIT_FAILURE

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
