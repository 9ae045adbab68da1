"""Read basecalls and region tables from legacy bax.h5 movie files."""
from __future__ import annotations

import re
from collections import defaultdict
from collections.abc import Iterator
from pathlib import Path

import h5py
import numpy as np

from bax2bam.models import Region, Zmw

SEQUENCING = 0

_BAX_NAME_RE = re.compile(r"^(?P<movie>.+?)(\.\d+)?\.ba[sx]\.h5$")
_DEFAULT_REGION_TYPES = ["Adapter", "Insert", "HQRegion"]


def movie_name_from_path(path: str | Path) -> str:
    """Derive the movie name from ``<movie>.<part>.bax.h5``."""
    name = Path(path).name
    m = _BAX_NAME_RE.match(name)
    if not m:
        raise ValueError(f"not a bax.h5 filename: {name}")
    return m.group("movie")


def _decode_attr(val) -> str:
    """Decode an HDF5 attribute value to a string."""
    if isinstance(val, (bytes, np.bytes_)):
        return val.decode("utf-8", errors="replace")
    return str(val)


class BaxFile:
    """Read-only view of one bax.h5 file.

    Parameters
    ----------
    path : Path or str
        Path to a ``.bax.h5`` file.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._h5 = h5py.File(self.path, "r")

    def __enter__(self) -> BaxFile:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self._h5.close()

    @property
    def movie_name(self) -> str:
        run_info = self._h5.get("ScanData/RunInfo")
        if run_info is not None and "MovieName" in run_info.attrs:
            return _decode_attr(run_info.attrs["MovieName"])
        return movie_name_from_path(self.path)

    @property
    def has_ccs(self) -> bool:
        return "PulseData/ConsensusBaseCalls" in self._h5

    def _regions_by_hole(self) -> dict[int, list[Region]]:
        by_hole: dict[int, list[Region]] = defaultdict(list)
        dset = self._h5.get("PulseData/Regions")
        if dset is None:
            return by_hole
        raw_types = dset.attrs.get("RegionTypes")
        types = [_decode_attr(t) for t in raw_types] if raw_types is not None else _DEFAULT_REGION_TYPES
        for hole, type_idx, start, end, score in dset[()]:
            if not 0 <= type_idx < len(types):
                raise ValueError(f"unknown region type index {int(type_idx)} for hole {int(hole)}")
            by_hole[int(hole)].append(
                Region(type=types[int(type_idx)], start=int(start), end=int(end), score=int(score))
            )
        return by_hole

    def _iter_calls(self, group_name: str) -> Iterator[tuple[int, int, int, int, int]]:
        """Yield ``(index, hole_number, hole_status, start, end)`` per ZMW."""
        zmw = self._h5[f"{group_name}/ZMW"]
        holes = zmw["HoleNumber"][()]
        num_event = zmw["NumEvent"][()]
        if "HoleStatus" in zmw:
            status = zmw["HoleStatus"][()]
        else:
            status = np.zeros(len(holes), dtype=np.uint8)
        offsets = np.concatenate(([0], np.cumsum(num_event, dtype=np.int64)))
        for i, hole in enumerate(holes):
            yield i, int(hole), int(status[i]), int(offsets[i]), int(offsets[i + 1])

    def zmws(self) -> Iterator[Zmw]:
        """Yield every sequencing ZMW from ``PulseData/BaseCalls``."""
        group = self._h5["PulseData/BaseCalls"]
        basecall = group["Basecall"][()]
        qv = group["QualityValue"][()]
        read_score = None
        if "ZMWMetrics/ReadScore" in group:
            read_score = group["ZMWMetrics/ReadScore"][()]
        regions = self._regions_by_hole()

        for i, hole, status, start, end in self._iter_calls("PulseData/BaseCalls"):
            if status != SEQUENCING:
                continue
            yield Zmw(
                hole_number=hole,
                hole_status=status,
                bases=basecall[start:end].tobytes().decode("ascii"),
                qualities=np.asarray(qv[start:end], dtype=np.uint8),
                regions=regions.get(hole, []),
                read_score=float(read_score[i]) if read_score is not None else 0.0,
            )

    def ccs_reads(self) -> Iterator[Zmw]:
        """Yield consensus reads from ``PulseData/ConsensusBaseCalls``."""
        group = self._h5["PulseData/ConsensusBaseCalls"]
        basecall = group["Basecall"][()]
        qv = group["QualityValue"][()]
        passes = None
        if "Passes/NumPasses" in group:
            passes = group["Passes/NumPasses"][()]
        accuracy = None
        if "ZMWMetrics/PredictedAccuracy" in group:
            accuracy = group["ZMWMetrics/PredictedAccuracy"][()]

        for i, hole, status, start, end in self._iter_calls("PulseData/ConsensusBaseCalls"):
            if status != SEQUENCING or end <= start:
                continue
            yield Zmw(
                hole_number=hole,
                hole_status=status,
                bases=basecall[start:end].tobytes().decode("ascii"),
                qualities=np.asarray(qv[start:end], dtype=np.uint8),
                read_score=float(accuracy[i]) if accuracy is not None else 0.0,
                num_passes=int(passes[i]) if passes is not None else 0,
            )
