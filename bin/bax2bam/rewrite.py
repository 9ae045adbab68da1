"""Rewrite an HdfSubreadSet descriptor into a SubreadSet for the new BAMs."""
from __future__ import annotations

import os
import sys
import xml.etree.ElementTree as ET
from datetime import datetime, timezone

from bax2bam.dataset import (
    SUBREAD,
    DataSet,
    DataSetError,
    ExternalResource,
    FileIndex,
    make_time_stamped_name,
    to_dataset_format,
    to_iso8601,
)
from bax2bam.models import Settings

SUBREADSET_META_TYPE = "PacBio.DataSet.SubreadSet"
SUBREADSET_NAME_PREFIX = "pacbio_dataset_subreadset-"
SUBREAD_BAM_META_TYPE = "PacBio.SubreadFile.SubreadBamFile"
SCRAPS_BAM_META_TYPE = "PacBio.SubreadFile.ScrapsBamFile"
PBI_META_TYPE = "PacBio.Index.PacBioIndex"
LEGACY_MARKER = "bax"
FILE_SCHEME = "file://"

XML_ERROR = "could not create output XML"


def current_working_dir() -> str:
    """Process working directory, or an empty string if it is gone."""
    try:
        return os.getcwd()
    except OSError:
        return ""


def resolve_resource_path(filename: str, cwd: str) -> str:
    """Make ``filename`` absolute against ``cwd`` and prefix the file scheme."""
    if filename.startswith("/"):
        path = filename
    else:
        path = f"{cwd}/{filename}" if cwd else filename
    return FILE_SCHEME + path


def is_legacy_resource(resource: ExternalResource) -> bool:
    return LEGACY_MARKER in resource.meta_type.lower()


def output_xml_path(settings: Settings) -> str:
    return settings.output_xml_filename or settings.output_bam_prefix + ".dataset.xml"


def bam_resource(meta_type: str, path: str, now: datetime) -> ExternalResource:
    """New BAM resource carrying a single .pbi index."""
    index = FileIndex(
        meta_type=PBI_META_TYPE,
        resource_id=path + ".pbi",
        time_stamped_name=make_time_stamped_name(PBI_META_TYPE, now),
    )
    return ExternalResource(
        meta_type=meta_type,
        resource_id=path,
        file_indices=[index],
        time_stamped_name=make_time_stamped_name(meta_type, now),
    )


def rewrite_dataset(dataset: DataSet, settings: Settings, cwd: str, now: datetime) -> None:
    """Retag ``dataset`` as a SubreadSet and swap bax resources for the BAM outputs."""
    dataset.type = SUBREAD
    dataset.meta_type = SUBREADSET_META_TYPE
    dataset.created_at = to_iso8601(now)
    dataset.time_stamped_name = SUBREADSET_NAME_PREFIX + to_dataset_format(now)

    to_remove = [r for r in dataset.external_resources if is_legacy_resource(r)]
    for resource in to_remove:
        dataset.remove_external_resource(resource)

    main_bam = bam_resource(
        SUBREAD_BAM_META_TYPE,
        resolve_resource_path(settings.output_bam_filename, cwd),
        now,
    )
    if settings.scraps_bam_filename:
        main_bam.external_resources.append(bam_resource(
            SCRAPS_BAM_META_TYPE,
            resolve_resource_path(settings.scraps_bam_filename, cwd),
            now,
        ))
    dataset.add_external_resource(main_bam)


def write_dataset_xml(
    settings: Settings,
    errors: list[str],
    cwd: str | None = None,
    now: datetime | None = None,
) -> bool:
    """Load the input dataset XML, rewrite it and save it next to the BAMs.

    Any failure is reported as a single generic message appended to
    ``errors``; the output file may be left half-written.

    Parameters
    ----------
    settings : Settings
        Run settings; ``dataset_xml_filename`` must be set.
    errors : list of str
        Receives the error message on failure.
    cwd : str, optional
        Directory relative output filenames are resolved against.
        Defaults to the process working directory.
    now : datetime, optional
        Timestamp for CreatedAt and TimeStampedName. Defaults to UTC now.
    """
    if cwd is None:
        cwd = current_working_dir()
    if now is None:
        now = datetime.now(timezone.utc)

    try:
        dataset = DataSet.load(settings.dataset_xml_filename)
        rewrite_dataset(dataset, settings, cwd, now)
        xml_fn = output_xml_path(settings)
        dataset.save(xml_fn)
    except (OSError, DataSetError, ET.ParseError) as e:
        if settings.verbose:
            print(f"DEBUG: {e}", file=sys.stderr)
        errors.append(XML_ERROR)
        return False

    print(f"Wrote dataset XML to {xml_fn}")
    return True
