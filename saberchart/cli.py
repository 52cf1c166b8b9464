import argparse
import logging
from pathlib import Path

from saberchart.audio import SUPPORTED_EXTENSIONS
from saberchart.core import BeatmapGenerator, unique_directory
from saberchart.errors import SaberchartError
from saberchart.profiles import DIFFICULTIES

logger = logging.getLogger("saberchart")


def build_arg_parser():
        p = argparse.ArgumentParser("saberchart")

        # ------------------
        # Analysis
        # ------------------
        p.add_argument("--tempo-window", type=float, default=0.5)
        p.add_argument("--energy-chunk", type=int, default=1024)
        p.add_argument("--start-offset", type=float, default=2.5)
        p.add_argument("--no-beat-snap", action="store_true")

        # ------------------
        # Generation
        # ------------------
        p.add_argument("--seed", type=int, default=None)
        p.add_argument("--difficulty", action="append", choices=DIFFICULTIES, dest="difficulties")
        p.add_argument("--profiles", help="JSON file with per-difficulty overrides")

        # ------------------
        # Output
        # ------------------
        p.add_argument("--no-audio", action="store_true", help="Skip writing song.egg")
        p.add_argument("--cover", help="Cover image to copy into each map")
        p.add_argument("--preview", action="store_true", help="Save a preview.png per map")

        # ------------------
        # Logging
        # ------------------
        p.add_argument("-v", "--verbose", action="store_true")
        p.add_argument("-q", "--quiet", action="store_true")

        return p


def build_cfg_from_args(args) -> dict:
        return {
            "tempo_window": args.tempo_window,
            "energy_chunk": args.energy_chunk,
            "start_offset": args.start_offset,
            "beat_snap": not args.no_beat_snap,
            "seed": args.seed,
            "difficulties": args.difficulties or list(DIFFICULTIES),
            "profiles": args.profiles,
            "encode_audio": not args.no_audio,
            "cover": args.cover,
        }


def collect_inputs(paths) -> list[Path]:
    files = []
    for raw in paths:
        path = Path(raw).expanduser()
        if path.is_dir():
            files.extend(sorted(f for f in path.iterdir() if f.is_file()))
        else:
            files.append(path)
    return files


def configure_logging(args):
    level = logging.INFO
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def main(argv=None):
    parser = build_arg_parser()
    parser.add_argument("audio", nargs="+", help="Audio files or directories")
    parser.add_argument("-o", "--output", help="Directory to create maps in")
    args = parser.parse_args(argv)

    configure_logging(args)
    cfg = build_cfg_from_args(args)

    failed = 0
    for audio in collect_inputs(args.audio):
        if audio.suffix.lower() not in SUPPORTED_EXTENSIONS:
            logger.warning("Not supported: %s", audio.name)
            continue
        try:
            gen = BeatmapGenerator(audio, cfg=cfg)
            gen.generate_charts()
            output_dir = None
            if args.output:
                parent = Path(args.output).expanduser()
                parent.mkdir(parents=True, exist_ok=True)
                output_dir = unique_directory(parent, gen.track.title)
            output_dir = gen.export(output_dir)
            if args.preview:
                gen.preview(output_dir / "preview.png")
        except (SaberchartError, OSError) as exc:
            failed += 1
            logger.error("Skipped %s: %s", audio.name, exc)

    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
