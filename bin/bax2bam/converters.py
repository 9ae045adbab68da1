"""Conversion strategies: one per read type that can be pulled out of bax.h5."""
from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from pathlib import Path

from bax2bam.bam import BamWriter
from bax2bam.bax import BaxFile, movie_name_from_path
from bax2bam.models import ReadRecord, Settings, Zmw
from bax2bam.pbi import ADAPTER_AFTER, ADAPTER_BEFORE

SCRAP_READ_TYPE = "SCRAP"


def make_record(
    movie_name: str,
    zmw: Zmw,
    start: int,
    end: int,
    name: str | None = None,
    **kwargs,
) -> ReadRecord:
    """Cut ``[start, end)`` out of a ZMW's basecalls."""
    return ReadRecord(
        name=name or f"{movie_name}/{zmw.hole_number}/{start}_{end}",
        hole_number=zmw.hole_number,
        q_start=start,
        q_end=end,
        bases=zmw.bases[start:end],
        qualities=zmw.qualities[start:end],
        read_quality=zmw.read_score,
        **kwargs,
    )


def scrap_record(movie_name: str, zmw: Zmw, start: int, end: int, scrap_type: str) -> ReadRecord:
    return make_record(
        movie_name, zmw, start, end,
        tags={"sc": (scrap_type, "A"), "sz": ("N", "A")},
    )


def low_quality_scraps(movie_name: str, zmw: Zmw) -> Iterator[ReadRecord]:
    """Sequence outside the HQ region, or the whole read when there is none."""
    hq_start, hq_end = zmw.hq_region()
    length = len(zmw.bases)
    if hq_end <= hq_start:
        if length > 0:
            yield scrap_record(movie_name, zmw, 0, length, "L")
        return
    if hq_start > 0:
        yield scrap_record(movie_name, zmw, 0, hq_start, "L")
    if hq_end < length:
        yield scrap_record(movie_name, zmw, hq_end, length, "L")


class Converter(ABC):
    """Base conversion strategy.

    Subclasses pick which reads go to the primary BAM and which, if any,
    go to scraps. ``run()`` never raises for conversion problems; failures
    are collected in ``errors``.
    """

    read_type = ""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._errors: list[str] = []

    @property
    def errors(self) -> list[str]:
        return list(self._errors)

    def zmws(self, bax: BaxFile) -> Iterable[Zmw]:
        return bax.zmws()

    @abstractmethod
    def primary_reads(self, movie_name: str, zmw: Zmw) -> Iterable[ReadRecord]:
        ...

    def scrap_reads(self, movie_name: str, zmw: Zmw) -> Iterable[ReadRecord]:
        return ()

    def _check_inputs(self) -> str | None:
        """Validate input files, returning the movie name or None on error."""
        files = self.settings.input_files
        if not files:
            self._errors.append("no input files provided")
            return None
        for fn in files:
            if not Path(fn).is_file():
                self._errors.append(f"input file not found: {fn}")
        if self._errors:
            return None
        try:
            movies = {movie_name_from_path(fn) for fn in files}
        except ValueError as e:
            self._errors.append(str(e))
            return None
        if len(movies) > 1:
            self._errors.append(f"input files come from multiple movies: {sorted(movies)}")
            return None
        return movies.pop()

    def run(self) -> bool:
        movie_name = self._check_inputs()
        if movie_name is None:
            return False

        settings = self.settings
        try:
            primary = BamWriter(Path(settings.output_bam_filename), movie_name, self.read_type)
        except (OSError, ValueError) as e:
            self._errors.append(f"could not open {settings.output_bam_filename} for writing: {e}")
            return False
        scraps = None
        source = settings.scraps_bam_filename
        try:
            if settings.scraps_bam_filename:
                scraps = BamWriter(Path(settings.scraps_bam_filename), movie_name, SCRAP_READ_TYPE)
            for source in settings.input_files:
                print(f"Converting {source}")
                with BaxFile(source) as bax:
                    for zmw in self.zmws(bax):
                        for rec in self.primary_reads(movie_name, zmw):
                            primary.write(rec)
                        if scraps is not None:
                            for rec in self.scrap_reads(movie_name, zmw):
                                scraps.write(rec)
        except (OSError, KeyError, ValueError) as e:
            self._errors.append(f"{source}: {e}")
        finally:
            primary.close()
            if scraps is not None:
                scraps.close()

        if self._errors:
            return False
        print(f"Wrote {primary.count} reads to {settings.output_bam_filename}")
        if scraps is not None:
            print(f"Wrote {scraps.count} reads to {settings.scraps_bam_filename}")
        return True


class SubreadConverter(Converter):
    """Insert regions clipped to the HQ region; adapters and LQ flanks to scraps."""

    read_type = "SUBREAD"

    def primary_reads(self, movie_name: str, zmw: Zmw) -> Iterator[ReadRecord]:
        hq_start, hq_end = zmw.hq_region()
        if hq_end <= hq_start:
            return
        adapters = zmw.regions_of("Adapter")
        for ins in zmw.regions_of("Insert"):
            start = max(ins.start, hq_start)
            end = min(ins.end, hq_end)
            if end <= start:
                continue
            cx = 0
            if any(a.end == start for a in adapters):
                cx |= ADAPTER_BEFORE
            if any(a.start == end for a in adapters):
                cx |= ADAPTER_AFTER
            yield make_record(
                movie_name, zmw, start, end,
                context_flags=cx,
                tags={"cx": (cx, "i")},
            )

    def scrap_reads(self, movie_name: str, zmw: Zmw) -> Iterator[ReadRecord]:
        hq_start, hq_end = zmw.hq_region()
        for a in zmw.regions_of("Adapter"):
            start = max(a.start, hq_start)
            end = min(a.end, hq_end)
            if end > start:
                yield scrap_record(movie_name, zmw, start, end, "A")
        yield from low_quality_scraps(movie_name, zmw)


class HqRegionConverter(Converter):
    """The HQ region of each ZMW; LQ flanks to scraps."""

    read_type = "HQREGION"

    def primary_reads(self, movie_name: str, zmw: Zmw) -> Iterator[ReadRecord]:
        hq_start, hq_end = zmw.hq_region()
        if hq_end > hq_start:
            yield make_record(movie_name, zmw, hq_start, hq_end)

    def scrap_reads(self, movie_name: str, zmw: Zmw) -> Iterator[ReadRecord]:
        return low_quality_scraps(movie_name, zmw)


class PolymeraseReadConverter(Converter):
    """The full polymerase read of each ZMW."""

    read_type = "POLYMERASE"

    def primary_reads(self, movie_name: str, zmw: Zmw) -> Iterator[ReadRecord]:
        length = len(zmw.bases)
        if length > 0:
            yield make_record(movie_name, zmw, 0, length, name=f"{movie_name}/{zmw.hole_number}")


class CcsConverter(Converter):
    """Circular consensus reads."""

    read_type = "CCS"

    def zmws(self, bax: BaxFile) -> Iterable[Zmw]:
        if not bax.has_ccs:
            raise ValueError("no consensus basecalls found")
        return bax.ccs_reads()

    def primary_reads(self, movie_name: str, zmw: Zmw) -> Iterator[ReadRecord]:
        yield make_record(
            movie_name, zmw, 0, len(zmw.bases),
            name=f"{movie_name}/{zmw.hole_number}/ccs",
            tags={"np": (zmw.num_passes, "i")},
        )
