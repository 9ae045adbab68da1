"""Write PacBio BAM index (.pbi) files, basic section only."""
from __future__ import annotations

import struct
from pathlib import Path

import numpy as np
from pysam.libcbgzf import BGZFile

PBI_MAGIC = b"PBI\x01"
PBI_VERSION = 0x030001  # 3.0.1
PBI_FLAGS_BASIC = 0x0000
_RESERVED = 18

# Local context flags (cx tag / ctxtFlag column).
ADAPTER_BEFORE = 0x01
ADAPTER_AFTER = 0x02


class PbiBuilder:
    """Accumulate per-record index columns and write them on close."""

    def __init__(self) -> None:
        self.rg_id: list[int] = []
        self.q_start: list[int] = []
        self.q_end: list[int] = []
        self.hole_number: list[int] = []
        self.read_qual: list[float] = []
        self.ctxt_flag: list[int] = []
        self.file_offset: list[int] = []

    def __len__(self) -> int:
        return len(self.file_offset)

    def add(
        self,
        rg_id: str,
        q_start: int,
        q_end: int,
        hole_number: int,
        read_qual: float,
        ctxt_flag: int,
        file_offset: int,
    ) -> None:
        self.rg_id.append(int(rg_id, 16))
        self.q_start.append(q_start)
        self.q_end.append(q_end)
        self.hole_number.append(hole_number)
        self.read_qual.append(read_qual)
        self.ctxt_flag.append(ctxt_flag)
        self.file_offset.append(file_offset)

    def header_bytes(self) -> bytes:
        return (
            PBI_MAGIC
            + struct.pack("<IHI", PBI_VERSION, PBI_FLAGS_BASIC, len(self))
            + b"\x00" * _RESERVED
        )

    def basic_data_bytes(self) -> bytes:
        columns = [
            np.array(self.rg_id, dtype="<u4").view("<i4"),
            np.array(self.q_start, dtype="<i4"),
            np.array(self.q_end, dtype="<i4"),
            np.array(self.hole_number, dtype="<i4"),
            np.array(self.read_qual, dtype="<f4"),
            np.array(self.ctxt_flag, dtype="u1"),
            np.array(self.file_offset, dtype="<i8"),
        ]
        return b"".join(col.tobytes() for col in columns)

    def write(self, pbi_path: Path) -> None:
        """Write the index as a BGZF-compressed file."""
        out = BGZFile(str(pbi_path), "wb")
        try:
            out.write(self.header_bytes())
            out.write(self.basic_data_bytes())
        finally:
            out.close()
