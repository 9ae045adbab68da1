"""Unaligned PacBio BAM writing with a companion .pbi index."""
from __future__ import annotations

import array
import hashlib
from pathlib import Path

import pysam

from bax2bam.models import ReadRecord
from bax2bam.pbi import PbiBuilder

PROGRAM_NAME = "bax2bam"
PROGRAM_VERSION = "0.1.0"
BAM_SPEC_VERSION = "3.0.1"


def read_group_id(movie_name: str, read_type: str) -> str:
    """PacBio read group ID: first 8 hex digits of md5("<movie>//<READTYPE>")."""
    digest = hashlib.md5(f"{movie_name}//{read_type}".encode()).hexdigest()
    return digest[:8]


def make_header(movie_name: str, read_type: str) -> pysam.AlignmentHeader:
    rg = {
        "ID": read_group_id(movie_name, read_type),
        "PL": "PACBIO",
        "PU": movie_name,
        "DS": f"READTYPE={read_type}",
    }
    return pysam.AlignmentHeader.from_dict({
        "HD": {"VN": "1.5", "SO": "unknown", "pb": BAM_SPEC_VERSION},
        "RG": [rg],
        "PG": [{"ID": PROGRAM_NAME, "PN": PROGRAM_NAME, "VN": PROGRAM_VERSION}],
    })


def pbi_path_for(bam_path: Path) -> Path:
    return Path(str(bam_path) + ".pbi")


class BamWriter:
    """Write ReadRecords to an unaligned BAM and index them on close.

    Parameters
    ----------
    bam_path : Path
        Output BAM path. The index is written to ``<bam_path>.pbi``.
    movie_name : str
        Movie the reads come from; used for the read group.
    read_type : str
        PacBio READTYPE, e.g. ``SUBREAD`` or ``SCRAP``.
    """

    def __init__(self, bam_path: Path, movie_name: str, read_type: str) -> None:
        self.path = Path(bam_path)
        self.rg_id = read_group_id(movie_name, read_type)
        self.header = make_header(movie_name, read_type)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._af = pysam.AlignmentFile(str(self.path), "wb", header=self.header)
        self._pbi = PbiBuilder()

    def __enter__(self) -> BamWriter:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @property
    def count(self) -> int:
        return len(self._pbi)

    def write(self, record: ReadRecord) -> None:
        seg = pysam.AlignedSegment(self.header)
        seg.query_name = record.name
        seg.query_sequence = record.bases
        seg.query_qualities = array.array("B", record.qualities.tobytes())
        seg.flag = 4  # unmapped
        seg.set_tag("RG", self.rg_id, "Z")
        seg.set_tag("zm", record.hole_number, "i")
        seg.set_tag("qs", record.q_start, "i")
        seg.set_tag("qe", record.q_end, "i")
        seg.set_tag("rq", record.read_quality, "f")
        for tag, (value, value_type) in record.tags.items():
            seg.set_tag(tag, value, value_type)

        offset = self._af.tell()
        self._af.write(seg)
        self._pbi.add(
            rg_id=self.rg_id,
            q_start=record.q_start,
            q_end=record.q_end,
            hole_number=record.hole_number,
            read_qual=record.read_quality,
            ctxt_flag=record.context_flags,
            file_offset=offset,
        )

    def close(self) -> None:
        if self._af is None:
            return
        self._af.close()
        self._af = None
        self._pbi.write(pbi_path_for(self.path))
