import argparse
import logging
import sys

from audiostudio.core.config import AUDIO_CONFIG
from audiostudio.core.errors import AudioStudioError
from audiostudio.core.persistence import load_project
from audiostudio.core.render import Renderer
from audiostudio.utils.logger import logger, setup_logger


def cmd_export(args):
    project = load_project(args.project)
    renderer = Renderer(sample_rate=args.samplerate)
    try:
        path = renderer.export(project, args.output)
    finally:
        renderer.close()
    print(path)


def cmd_info(args):
    project = load_project(args.project, ingest=False)
    print(f"{project.name}: {len(project.tracks)} tracks, {project.content_end:.2f}s")
    for track in project.tracks:
        flags = " ".join(f for f, on in (("muted", track.is_muted), ("solo", track.is_soloed)) if on)
        print(f"  [{track.id}] {track.name} ({len(track.clips)} clips) {flags}".rstrip())


def build_parser():
    parser = argparse.ArgumentParser(prog="pyaudiostudio", description="Render and inspect PyAudioStudio projects")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug messages")
    parser.add_argument("--log-file", help="Also write the full log to this file")
    sub = parser.add_subparsers(dest="command", required=True)

    export = sub.add_parser("export", help="Render a project file to WAV")
    export.add_argument("project")
    export.add_argument("-o", "--output", default=".")
    export.add_argument("--samplerate", type=int, default=AUDIO_CONFIG.render_samplerate)
    export.set_defaults(func=cmd_export)

    info = sub.add_parser("info", help="Summarize a project file")
    info.add_argument("project")
    info.set_defaults(func=cmd_info)
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    setup_logger(logging.DEBUG if args.verbose else logging.INFO, args.log_file)
    try:
        args.func(args)
    except AudioStudioError as e:
        logger.error("%s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
