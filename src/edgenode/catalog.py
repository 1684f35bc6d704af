"""Service descriptor catalog files.

A catalog is a YAML or JSON document listing the service descriptors a node is
configured with, in wire format::

    schema_version: 1
    services:
      - url: https://example.com/netspeed
        organization: e2edev
        name: netspeed
        arch: amd64
        versionRange: "[1.0.0,2.0.0)"
        auto_upgrade: true
        active_upgrade: false
        attributes: []

A bare top-level sequence of descriptors is accepted as well. Descriptor order
is preserved; the resolver reports ambiguity instead of picking by position.
"""

from __future__ import annotations

import json
import os
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Final, TypeAlias, cast

import structlog
import yaml

from edgenode.constants import CATALOG_SCHEMA_VERSION
from edgenode.domain.errors import EdgeNodeModelError
from edgenode.domain.resolution import resolve_service_descriptor
from edgenode.domain.services import ServiceDescriptor
from edgenode.domain.versions import Version, validate_version_range

PathLike: TypeAlias = str | os.PathLike[str]

_YAML_SUFFIXES: Final[frozenset[str]] = frozenset({".yaml", ".yml"})
_CATALOG_KEYS: Final[frozenset[str]] = frozenset({"schema_version", "services"})

_logger = structlog.get_logger(__name__)


class CatalogError(ValueError):
    """Raised when a catalog file cannot be read or holds invalid descriptors."""


class ServiceCatalog:
    """Ordered, validated collection of service descriptors."""

    __slots__ = ("_descriptors", "_source")

    def __init__(
        self,
        descriptors: Iterable[ServiceDescriptor],
        *,
        source: Path | None = None,
    ) -> None:
        self._descriptors = tuple(descriptors)
        self._source = source
        for index, descriptor in enumerate(self._descriptors):
            location = _location(source, index)
            if not isinstance(descriptor, ServiceDescriptor):
                raise CatalogError(f"{location}: expected ServiceDescriptor")
            try:
                descriptor.require_identity()
                if descriptor.version_range is not None:
                    validate_version_range(descriptor.version_range)
            except EdgeNodeModelError as exc:
                raise CatalogError(f"{location}: {exc}") from exc

    @property
    def descriptors(self) -> tuple[ServiceDescriptor, ...]:
        return self._descriptors

    @property
    def source(self) -> Path | None:
        return self._source

    def __len__(self) -> int:
        return len(self._descriptors)

    @classmethod
    def load(cls, path: PathLike) -> ServiceCatalog:
        """Load a ``.yaml``/``.yml`` or ``.json`` catalog file."""

        source = Path(path).expanduser()
        if not source.is_file():
            raise CatalogError(f"service catalog does not exist: {source}")
        loaded = _read_document(source)
        records = _catalog_records(loaded, source)

        descriptors: list[ServiceDescriptor] = []
        for index, record in enumerate(records):
            if not isinstance(record, Mapping):
                raise CatalogError(
                    f"{_location(source, index)}: expected mapping, got {type(record).__name__}"
                )
            try:
                descriptors.append(ServiceDescriptor.from_dict(record))
            except ValueError as exc:
                raise CatalogError(f"{_location(source, index)}: {exc}") from exc

        catalog = cls(descriptors, source=source)
        _logger.info("service_catalog_loaded", path=source.as_posix(), count=len(catalog))
        return catalog

    def dump(self, path: PathLike) -> Path:
        """Write the catalog in canonical form; the suffix selects YAML or JSON."""

        destination = Path(path).expanduser()
        payload = {
            "schema_version": CATALOG_SCHEMA_VERSION,
            "services": [item.to_dict() for item in self._descriptors],
        }
        if destination.suffix.lower() in _YAML_SUFFIXES:
            rendered = yaml.safe_dump(
                payload,
                sort_keys=True,
                default_flow_style=False,
                allow_unicode=False,
                width=120,
            )
        else:
            rendered = json.dumps(payload, sort_keys=True, indent=2, ensure_ascii=False)
        if not rendered.endswith("\n"):
            rendered = rendered + "\n"
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(rendered, encoding="utf-8")
        return destination

    def for_service(self, org: str, url: str) -> tuple[ServiceDescriptor, ...]:
        """All descriptors configured for one service, regardless of arch or version."""

        return tuple(item for item in self._descriptors if item.org == org and item.url == url)

    def resolve(
        self,
        *,
        org: str,
        url: str,
        arch: str,
        version: Version | str,
        arch_synonyms: Mapping[str, str] | None = None,
    ) -> ServiceDescriptor | None:
        return resolve_service_descriptor(
            self._descriptors,
            org=org,
            url=url,
            arch=arch,
            version=version,
            arch_synonyms=arch_synonyms,
        )


def _read_document(source: Path) -> object:
    try:
        with source.open("r", encoding="utf-8") as handle:
            if source.suffix.lower() in _YAML_SUFFIXES:
                return cast("object", yaml.safe_load(handle))
            return cast("object", json.load(handle))
    except yaml.YAMLError as exc:
        raise CatalogError(f"{source}: invalid YAML ({exc})") from exc
    except json.JSONDecodeError as exc:
        raise CatalogError(f"{source}: invalid JSON ({exc})") from exc
    except OSError as exc:
        raise CatalogError(f"unable to read service catalog {source}: {exc}") from exc


def _catalog_records(loaded: object, source: Path) -> Sequence[object]:
    if loaded is None:
        return ()
    if isinstance(loaded, list):
        return loaded
    if not isinstance(loaded, Mapping):
        raise CatalogError(
            f"{source}: expected mapping or sequence at top level, got {type(loaded).__name__}"
        )

    unknown = sorted(str(key) for key in loaded if key not in _CATALOG_KEYS)
    if unknown:
        raise CatalogError(f"{source}: unexpected top-level fields {unknown}")
    version = loaded.get("schema_version", CATALOG_SCHEMA_VERSION)
    if isinstance(version, bool) or version != CATALOG_SCHEMA_VERSION:
        raise CatalogError(
            f"{source}: unsupported catalog schema_version {version!r}; "
            f"expected {CATALOG_SCHEMA_VERSION}"
        )
    services = loaded.get("services", [])
    if not isinstance(services, list):
        raise CatalogError(f"{source}: services must be a sequence")
    return services


def _location(source: Path | None, index: int) -> str:
    name = "<memory>" if source is None else source.name
    return f"{name}[{index}]"


__all__ = ["CatalogError", "ServiceCatalog"]
