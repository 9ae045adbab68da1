"""CLI entry point for bax2bam."""
from __future__ import annotations

import argparse
import sys
import tomllib
from pathlib import Path

from bax2bam.bax import movie_name_from_path
from bax2bam.models import Mode, Settings
from bax2bam.runner import EXIT_FAILURE, report_errors, run

CONFIG_SECTION = "bax2bam"
CONFIG_KEYS = {"mode", "input_files", "output_prefix", "xml", "output_xml", "verbose"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bax2bam",
        description="Convert legacy bax.h5 movie files to PacBio BAM and update the dataset XML.",
    )
    parser.add_argument("files", nargs="*", help="Input .bax.h5 files from one movie")
    parser.add_argument("--fofn", type=Path, default=None, help="File listing input .bax.h5 files, one per line")

    modes = parser.add_mutually_exclusive_group()
    modes.add_argument("--subread", dest="mode", action="store_const", const=Mode.SUBREAD,
                       help="Output subreads.bam and scraps.bam (default)")
    modes.add_argument("--hqregion", dest="mode", action="store_const", const=Mode.HQREGION,
                       help="Output hqregions.bam and scraps.bam")
    modes.add_argument("--polymeraseread", dest="mode", action="store_const", const=Mode.POLYMERASE,
                       help="Output polymerase.bam")
    modes.add_argument("--ccs", dest="mode", action="store_const", const=Mode.CCS,
                       help="Output ccs.bam")

    parser.add_argument("-o", "--output-prefix", default=None,
                        help="Prefix for output files (default: movie name)")
    parser.add_argument("--xml", default=None, help="Input HdfSubreadSet XML to rewrite")
    parser.add_argument("--output-xml", default=None,
                        help="Output dataset XML (default: <prefix>.dataset.xml)")
    parser.add_argument("--config", type=Path, default=None, help="TOML file with a [bax2bam] table")
    parser.add_argument("-v", "--verbose", action="store_true", help="Print details behind errors")
    return parser


def load_config(path: Path) -> dict:
    """Read the ``[bax2bam]`` table from a TOML config file."""
    with path.open("rb") as fh:
        data = tomllib.load(fh)
    section = data.get(CONFIG_SECTION, {})
    unknown = set(section) - CONFIG_KEYS
    if unknown:
        raise ValueError(f"unknown keys in [{CONFIG_SECTION}] of {path}: {', '.join(sorted(unknown))}")
    return section


def read_fofn(path: Path) -> list[str]:
    return [line.strip() for line in path.read_text().splitlines() if line.strip()]


def build_settings(args: argparse.Namespace) -> Settings:
    """Merge CLI arguments over the optional config file into Settings."""
    config = load_config(args.config) if args.config else {}

    input_files = list(args.files)
    if args.fofn:
        input_files.extend(read_fofn(args.fofn))
    if not input_files:
        input_files = list(config.get("input_files", []))
    if not input_files:
        raise ValueError("no input files provided")

    mode = Mode(args.mode or config.get("mode", Mode.SUBREAD))
    prefix = args.output_prefix or config.get("output_prefix") or movie_name_from_path(input_files[0])

    return Settings.for_prefix(
        prefix,
        mode,
        input_files=input_files,
        dataset_xml_filename=args.xml or config.get("xml", ""),
        output_xml_filename=args.output_xml or config.get("output_xml", ""),
        verbose=args.verbose or bool(config.get("verbose", False)),
    )


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = build_settings(args)
    except (OSError, ValueError) as e:
        report_errors([str(e)])
        sys.exit(EXIT_FAILURE)

    sys.exit(run(settings))


if __name__ == "__main__":
    main()
