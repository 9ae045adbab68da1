"""Shared fixtures: small bax.h5 movie files and HdfSubreadSet XML."""
from __future__ import annotations

from pathlib import Path

import h5py
import numpy as np
import pytest

MOVIE = "m150101_010101_42_c100000000000000000000000000000001_s1_p0"

ADAPTER, INSERT, HQREGION = 0, 1, 2

# hole, status, bases, [(region_type, start, end)], read_score
DEFAULT_ZMWS = [
    (
        100, 0, "ACGTACGTAC" + "GG" + "TTTTTTTTTT" + "CC" + "AAAAAA",
        [
            (INSERT, 0, 10), (ADAPTER, 10, 12), (INSERT, 12, 22),
            (ADAPTER, 22, 24), (INSERT, 24, 30), (HQREGION, 5, 25),
        ],
        0.85,
    ),
    (101, 1, "ACGTAC", [(HQREGION, 0, 6)], 0.0),
    (102, 0, "GATTACAG", [(INSERT, 0, 8), (HQREGION, 0, 0)], 0.1),
]

# hole, status, bases, num_passes
DEFAULT_CCS = [
    (100, 0, "ACGTACGTACGT", 7),
    (101, 1, "", 0),
    (102, 0, "", 0),
]


def make_bax(path: Path, movie: str = MOVIE, zmws=None, ccs=None) -> Path:
    """Write a minimal bax.h5 with BaseCalls, Regions and optional CCS calls."""
    zmws = DEFAULT_ZMWS if zmws is None else zmws
    with h5py.File(path, "w") as f:
        f.create_group("ScanData/RunInfo").attrs["MovieName"] = movie

        bases = "".join(z[2] for z in zmws)
        bc = f.create_group("PulseData/BaseCalls")
        bc.create_dataset("Basecall", data=np.frombuffer(bases.encode(), dtype=np.uint8))
        bc.create_dataset("QualityValue", data=np.full(len(bases), 20, dtype=np.uint8))
        bc.create_dataset("ZMW/HoleNumber", data=np.array([z[0] for z in zmws], dtype=np.uint32))
        bc.create_dataset("ZMW/HoleStatus", data=np.array([z[1] for z in zmws], dtype=np.uint8))
        bc.create_dataset("ZMW/NumEvent", data=np.array([len(z[2]) for z in zmws], dtype=np.int32))
        bc.create_dataset("ZMWMetrics/ReadScore", data=np.array([z[4] for z in zmws], dtype=np.float32))

        rows = [[z[0], t, s, e, 0] for z in zmws for t, s, e in z[3]]
        regions = f["PulseData"].create_dataset(
            "Regions", data=np.array(rows, dtype=np.int32).reshape(-1, 5)
        )
        regions.attrs["RegionTypes"] = [b"Adapter", b"Insert", b"HQRegion"]

        if ccs is not None:
            ccs_bases = "".join(c[2] for c in ccs)
            cc = f.create_group("PulseData/ConsensusBaseCalls")
            cc.create_dataset("Basecall", data=np.frombuffer(ccs_bases.encode(), dtype=np.uint8))
            cc.create_dataset("QualityValue", data=np.full(len(ccs_bases), 30, dtype=np.uint8))
            cc.create_dataset("ZMW/HoleNumber", data=np.array([c[0] for c in ccs], dtype=np.uint32))
            cc.create_dataset("ZMW/HoleStatus", data=np.array([c[1] for c in ccs], dtype=np.uint8))
            cc.create_dataset("ZMW/NumEvent", data=np.array([len(c[2]) for c in ccs], dtype=np.int32))
            cc.create_dataset("Passes/NumPasses", data=np.array([c[3] for c in ccs], dtype=np.int32))
    return path


HDF_SUBREADSET_XML = """<?xml version="1.0" encoding="utf-8"?>
<pbds:HdfSubreadSet xmlns:pbds="http://pacificbiosciences.com/PacBioDatasets.xsd" \
xmlns:pbbase="http://pacificbiosciences.com/PacBioBaseDataModel.xsd" \
CreatedAt="2015-01-01T01:01:01" MetaType="PacBio.DataSet.HdfSubreadSet" Name="{movie}" \
Tags="" TimeStampedName="pacbio_dataset_hdfsubreadset-150101_010101000" \
UniqueId="b095d0a3-94b8-4918-b3af-a3f81bbe519c" Version="3.0.1">
  <pbbase:ExternalResources>
    <pbbase:ExternalResource MetaType="PacBio.SubreadFile.BaxFile" ResourceId="file:///data/{movie}.1.bax.h5"/>
    <pbbase:ExternalResource MetaType="PacBio.SubreadFile.MetadataXmlFile" ResourceId="file:///data/{movie}.metadata.xml"/>
    <pbbase:ExternalResource MetaType="PacBio.SubreadFile.BaxFile" ResourceId="file:///data/{movie}.2.bax.h5"/>
    <pbbase:ExternalResource MetaType="PacBio.SubreadFile.BAXFILE" ResourceId="file:///data/{movie}.3.bax.h5"/>
  </pbbase:ExternalResources>
  <pbds:DataSetMetadata>
    <pbds:TotalLength>0</pbds:TotalLength>
    <pbds:NumRecords>0</pbds:NumRecords>
  </pbds:DataSetMetadata>
</pbds:HdfSubreadSet>
"""


@pytest.fixture
def bax_file(tmp_path) -> Path:
    return make_bax(tmp_path / f"{MOVIE}.1.bax.h5")


@pytest.fixture
def hdf_subreadset_xml(tmp_path) -> Path:
    path = tmp_path / f"{MOVIE}.hdfsubreadset.xml"
    path.write_text(HDF_SUBREADSET_XML.format(movie=MOVIE))
    return path
