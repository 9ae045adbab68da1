"""Run one conversion and, when asked, rewrite the dataset XML."""
from __future__ import annotations

import sys

from bax2bam.converters import (
    CcsConverter,
    Converter,
    HqRegionConverter,
    PolymeraseReadConverter,
    SubreadConverter,
)
from bax2bam.models import Mode, Settings
from bax2bam.rewrite import write_dataset_xml

EXIT_SUCCESS = 0
EXIT_FAILURE = 1

CONVERTERS: dict[Mode, type[Converter]] = {
    Mode.HQREGION: HqRegionConverter,
    Mode.POLYMERASE: PolymeraseReadConverter,
    Mode.SUBREAD: SubreadConverter,
    Mode.CCS: CcsConverter,
}


def make_converter(settings: Settings) -> Converter | None:
    """Instantiate the converter for ``settings.mode``; None if unknown."""
    converter_cls = CONVERTERS.get(settings.mode)
    if converter_cls is None:
        return None
    return converter_cls(settings)


def report_errors(errors: list[str]) -> None:
    for e in errors:
        print(f"ERROR: {e}", file=sys.stderr)


def run(settings: Settings) -> int:
    """Convert, then rewrite the dataset XML if one was given.

    Returns a process exit status. Converted BAMs are left in place even
    when the XML rewrite fails.
    """
    converter = make_converter(settings)
    if converter is None:
        report_errors(["unknown mode selected"])
        return EXIT_FAILURE

    success = False
    xml_errors: list[str] = []
    if converter.run():
        success = True
        if settings.dataset_xml_filename:
            if not write_dataset_xml(settings, xml_errors):
                success = False

    if success:
        return EXIT_SUCCESS

    report_errors(converter.errors)
    report_errors(xml_errors)
    return EXIT_FAILURE
