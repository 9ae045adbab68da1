"""Data models for bax2bam."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

import numpy as np
from pydantic import BaseModel, ConfigDict, Field


class Mode(str, Enum):
    """Conversion mode; selects which reads end up in the primary BAM."""

    HQREGION = "HQRegion"
    POLYMERASE = "PolymeraseRead"
    SUBREAD = "Subread"
    CCS = "CCS"


# Output filename suffixes, appended to the output prefix.
PRIMARY_SUFFIX = {
    Mode.HQREGION: ".hqregions.bam",
    Mode.POLYMERASE: ".polymerase.bam",
    Mode.SUBREAD: ".subreads.bam",
    Mode.CCS: ".ccs.bam",
}
SCRAPS_SUFFIX = ".scraps.bam"
MODES_WITH_SCRAPS = {Mode.HQREGION, Mode.SUBREAD}


class Settings(BaseModel):
    """Run configuration, fixed for the duration of one conversion."""

    model_config = ConfigDict(frozen=True)

    mode: Mode = Mode.SUBREAD
    input_files: list[str] = Field(default_factory=list)
    output_bam_prefix: str
    output_bam_filename: str
    scraps_bam_filename: str = ""
    dataset_xml_filename: str = ""
    output_xml_filename: str = ""
    verbose: bool = False

    @classmethod
    def for_prefix(cls, prefix: str, mode: Mode = Mode.SUBREAD, **kwargs) -> Settings:
        """Build settings whose output filenames derive from ``prefix``."""
        scraps = prefix + SCRAPS_SUFFIX if mode in MODES_WITH_SCRAPS else ""
        return cls(
            mode=mode,
            output_bam_prefix=prefix,
            output_bam_filename=prefix + PRIMARY_SUFFIX[mode],
            scraps_bam_filename=scraps,
            **kwargs,
        )


@dataclass
class Region:
    """One annotated interval of a ZMW's polymerase read."""

    type: str
    start: int
    end: int
    score: int = 0


@dataclass
class Zmw:
    """Basecalls and region annotations for a single ZMW."""

    hole_number: int
    hole_status: int
    bases: str
    qualities: np.ndarray
    regions: list[Region] = field(default_factory=list)
    read_score: float = 0.0
    num_passes: int = 0

    def hq_region(self) -> tuple[int, int]:
        """Return the HQ interval, or ``(0, 0)`` when none is annotated."""
        for r in self.regions:
            if r.type == "HQRegion":
                return r.start, r.end
        return 0, 0

    def regions_of(self, region_type: str) -> list[Region]:
        return sorted(
            (r for r in self.regions if r.type == region_type),
            key=lambda r: r.start,
        )


@dataclass
class ReadRecord:
    """A read ready to be written to BAM."""

    name: str
    hole_number: int
    q_start: int
    q_end: int
    bases: str
    qualities: np.ndarray
    read_quality: float = 0.0
    context_flags: int = 0
    tags: dict[str, tuple[object, str]] = field(default_factory=dict)
