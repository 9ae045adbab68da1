"""Tests for .pbi index writing."""
from __future__ import annotations

import gzip
import struct

import numpy as np


class TestPbiBuilder:

    def test_header_layout(self):
        from bax2bam.pbi import PbiBuilder

        pbi = PbiBuilder()
        pbi.add("ffffffff", 0, 10, 7, 0.9, 3, 1234)
        header = pbi.header_bytes()
        assert len(header) == 32
        assert header[:4] == b"PBI\x01"
        version, flags, n_reads = struct.unpack("<IHI", header[4:14])
        assert version == 0x030001
        assert flags == 0
        assert n_reads == 1

    def test_rg_id_stored_as_signed(self):
        from bax2bam.pbi import PbiBuilder

        pbi = PbiBuilder()
        pbi.add("ffffffff", 0, 10, 7, 0.9, 3, 1234)
        data = pbi.basic_data_bytes()
        # 4 x int32, float, uint8, int64
        assert len(data) == 4 * 5 + 1 + 8
        assert struct.unpack("<i", data[:4])[0] == -1

    def test_written_file_is_bgzf(self, tmp_path):
        from bax2bam.pbi import PbiBuilder

        pbi = PbiBuilder()
        for i in range(3):
            pbi.add("0000000a", i, i + 5, 100 + i, 0.5, 0, 1000 * i)
        path = tmp_path / "x.bam.pbi"
        pbi.write(path)

        with gzip.open(path, "rb") as fh:
            raw = fh.read()
        assert raw[:4] == b"PBI\x01"
        body = raw[32:]
        holes = np.frombuffer(body[36:48], dtype="<i4")
        assert holes.tolist() == [100, 101, 102]
        offsets = np.frombuffer(body[-24:], dtype="<i8")
        assert offsets.tolist() == [0, 1000, 2000]
