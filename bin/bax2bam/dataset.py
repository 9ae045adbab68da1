"""PacBio DataSet XML document model.

Wraps an ``ElementTree`` so callers work with typed accessors (dataset type,
metadata attributes, external resources and their file indices) instead of
raw XML. Elements the model does not know about are carried through a
load/save cycle untouched.
"""
from __future__ import annotations

import uuid
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

PBDS_NS = "http://pacificbiosciences.com/PacBioDatasets.xsd"
PBBASE_NS = "http://pacificbiosciences.com/PacBioBaseDataModel.xsd"

HDF_SUBREAD = "HdfSubreadSet"
SUBREAD = "SubreadSet"

# Prefixes used when saving. Registered once; input documents never change them.
PACBIO_PREFIXES = {
    "pbds": PBDS_NS,
    "pbbase": PBBASE_NS,
    "pbmeta": "http://pacificbiosciences.com/PacBioCollectionMetadata.xsd",
    "pbsample": "http://pacificbiosciences.com/PacBioSampleInfo.xsd",
    "pbrk": "http://pacificbiosciences.com/PacBioReagentKit.xsd",
    "pbpn": "http://pacificbiosciences.com/PacBioPartNumbers.xsd",
    "pbdm": "http://pacificbiosciences.com/PacBioDataModel.xsd",
}

for _prefix, _uri in PACBIO_PREFIXES.items():
    ET.register_namespace(_prefix, _uri)


class DataSetError(ValueError):
    """The document is not a usable DataSet XML."""


def _qname(ns: str, local: str) -> str:
    return f"{{{ns}}}{local}"


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def to_iso8601(ts: datetime) -> str:
    return ts.strftime("%Y-%m-%dT%H:%M:%SZ")


def to_dataset_format(ts: datetime) -> str:
    """Timestamp suffix used in TimeStampedName: ``yymmdd_HHMMSSfff``."""
    return ts.strftime("%y%m%d_%H%M%S") + f"{ts.microsecond // 1000:03d}"


def make_time_stamped_name(meta_type: str, ts: datetime) -> str:
    return meta_type.lower().replace(".", "_") + "-" + to_dataset_format(ts)


@dataclass
class FileIndex:
    """An index file attached to an external resource."""

    meta_type: str
    resource_id: str
    unique_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    time_stamped_name: str = ""

    @classmethod
    def from_element(cls, elem: ET.Element) -> FileIndex:
        return cls(
            meta_type=elem.get("MetaType", ""),
            resource_id=elem.get("ResourceId", ""),
            unique_id=elem.get("UniqueId", ""),
            time_stamped_name=elem.get("TimeStampedName", ""),
        )

    def to_element(self) -> ET.Element:
        elem = ET.Element(_qname(PBBASE_NS, "FileIndex"))
        _set_resource_attrs(elem, self.meta_type, self.resource_id,
                            self.unique_id, self.time_stamped_name)
        return elem


@dataclass
class ExternalResource:
    """A file referenced by the dataset, with its indices and nested resources.

    Resources read from a document keep a handle on their element so they
    can be removed from it again; freshly built resources have none until
    added.
    """

    meta_type: str
    resource_id: str
    file_indices: list[FileIndex] = field(default_factory=list)
    external_resources: list[ExternalResource] = field(default_factory=list)
    unique_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    time_stamped_name: str = ""
    element: ET.Element | None = field(default=None, repr=False, compare=False)

    @classmethod
    def from_element(cls, elem: ET.Element) -> ExternalResource:
        indices_elem = elem.find(_qname(PBBASE_NS, "FileIndices"))
        nested_elem = elem.find(_qname(PBBASE_NS, "ExternalResources"))
        return cls(
            meta_type=elem.get("MetaType", ""),
            resource_id=elem.get("ResourceId", ""),
            file_indices=[
                FileIndex.from_element(e)
                for e in (indices_elem if indices_elem is not None else [])
                if _local_name(e.tag) == "FileIndex"
            ],
            external_resources=[
                ExternalResource.from_element(e)
                for e in (nested_elem if nested_elem is not None else [])
                if _local_name(e.tag) == "ExternalResource"
            ],
            unique_id=elem.get("UniqueId", ""),
            time_stamped_name=elem.get("TimeStampedName", ""),
            element=elem,
        )

    def to_element(self) -> ET.Element:
        elem = ET.Element(_qname(PBBASE_NS, "ExternalResource"))
        _set_resource_attrs(elem, self.meta_type, self.resource_id,
                            self.unique_id, self.time_stamped_name)
        if self.file_indices:
            indices = ET.SubElement(elem, _qname(PBBASE_NS, "FileIndices"))
            indices.extend(fi.to_element() for fi in self.file_indices)
        if self.external_resources:
            nested = ET.SubElement(elem, _qname(PBBASE_NS, "ExternalResources"))
            nested.extend(r.to_element() for r in self.external_resources)
        return elem


def _set_resource_attrs(elem, meta_type, resource_id, unique_id, time_stamped_name) -> None:
    elem.set("MetaType", meta_type)
    elem.set("ResourceId", resource_id)
    if time_stamped_name:
        elem.set("TimeStampedName", time_stamped_name)
    if unique_id:
        elem.set("UniqueId", unique_id)


class DataSet:
    """A loaded DataSet XML document.

    Parameters
    ----------
    tree : ElementTree
        Parsed document. Use :meth:`load` to read one from disk.
    """

    def __init__(self, tree: ET.ElementTree) -> None:
        self._tree = tree
        self._root = tree.getroot()
        if not self._root.tag.startswith(f"{{{PBDS_NS}}}"):
            raise DataSetError(f"not a PacBio dataset document: <{self._root.tag}>")

    @classmethod
    def load(cls, path: str | Path) -> DataSet:
        """Parse ``path`` into a DataSet."""
        try:
            tree = ET.parse(str(path))
        except (ET.ParseError, LookupError, UnicodeError) as e:
            raise DataSetError(f"malformed dataset XML {path}: {e}") from e
        return cls(tree)

    # ------------------------------------------------------------------
    # Type and metadata attributes
    # ------------------------------------------------------------------

    @property
    def type(self) -> str:
        return _local_name(self._root.tag)

    @type.setter
    def type(self, value: str) -> None:
        self._root.tag = _qname(PBDS_NS, value)

    @property
    def meta_type(self) -> str:
        return self._root.get("MetaType", "")

    @meta_type.setter
    def meta_type(self, value: str) -> None:
        self._root.set("MetaType", value)

    @property
    def created_at(self) -> str:
        return self._root.get("CreatedAt", "")

    @created_at.setter
    def created_at(self, value: str) -> None:
        self._root.set("CreatedAt", value)

    @property
    def time_stamped_name(self) -> str:
        return self._root.get("TimeStampedName", "")

    @time_stamped_name.setter
    def time_stamped_name(self, value: str) -> None:
        self._root.set("TimeStampedName", value)

    @property
    def name(self) -> str:
        return self._root.get("Name", "")

    @property
    def unique_id(self) -> str:
        return self._root.get("UniqueId", "")

    # ------------------------------------------------------------------
    # External resources
    # ------------------------------------------------------------------

    def _resources_element(self, create: bool = False) -> ET.Element | None:
        elem = self._root.find(_qname(PBBASE_NS, "ExternalResources"))
        if elem is None and create:
            # ExternalResources is the first child of a DataSet.
            elem = ET.Element(_qname(PBBASE_NS, "ExternalResources"))
            self._root.insert(0, elem)
        return elem

    @property
    def external_resources(self) -> list[ExternalResource]:
        elem = self._resources_element()
        if elem is None:
            return []
        return [
            ExternalResource.from_element(e)
            for e in elem
            if _local_name(e.tag) == "ExternalResource"
        ]

    def add_external_resource(self, resource: ExternalResource) -> None:
        elem = resource.to_element()
        self._resources_element(create=True).append(elem)
        resource.element = elem

    def remove_external_resource(self, resource: ExternalResource) -> None:
        container = self._resources_element()
        if container is None or resource.element is None or resource.element not in list(container):
            raise DataSetError(f"resource is not part of this dataset: {resource.resource_id}")
        container.remove(resource.element)
        resource.element = None

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def save(self, path: str | Path) -> None:
        ET.indent(self._tree, space="  ")
        self._tree.write(str(path), encoding="utf-8", xml_declaration=True)
