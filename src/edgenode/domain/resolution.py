"""Select the service descriptor that applies to a device's service candidate.

Matching rules, applied to every descriptor in order:

* ``org`` and ``url`` must match exactly;
* ``arch`` must match after both sides are folded onto a canonical name; a
  descriptor without ``arch`` applies to every architecture;
* the descriptor's version range must contain the candidate version; a
  descriptor without a range applies to every version.

More than one match is a configuration error, never a silent first-wins.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

import structlog

from edgenode.constants import DEFAULT_ARCH_SYNONYMS
from edgenode.domain.errors import AmbiguousConfiguration, MissingRequiredField
from edgenode.domain.services import ServiceDescriptor
from edgenode.domain.versions import Version

_logger = structlog.get_logger(__name__)


def normalize_arch(arch: str, synonyms: Mapping[str, str] | None = None) -> str:
    """Fold a platform alias (``x86_64``, ``aarch64``...) onto its canonical name."""

    table = DEFAULT_ARCH_SYNONYMS if synonyms is None else synonyms
    key = arch.strip().lower()
    return table.get(key, key)


def matching_descriptors(
    descriptors: Iterable[ServiceDescriptor],
    *,
    org: str,
    url: str,
    arch: str,
    version: Version | str,
    arch_synonyms: Mapping[str, str] | None = None,
) -> list[ServiceDescriptor]:
    """Every descriptor that applies to the candidate, in input order."""

    candidate_version = version if isinstance(version, Version) else Version.parse(version)
    candidate_arch = normalize_arch(arch, arch_synonyms)

    matches: list[ServiceDescriptor] = []
    for descriptor in descriptors:
        descriptor_org, descriptor_url = descriptor.require_identity()
        if descriptor_org != org or descriptor_url != url:
            continue
        if descriptor.arch is not None and descriptor.arch.strip():
            if normalize_arch(descriptor.arch, arch_synonyms) != candidate_arch:
                continue
        if not descriptor.effective_version_range.contains(candidate_version):
            continue
        matches.append(descriptor)
    return matches


def resolve_service_descriptor(
    descriptors: Iterable[ServiceDescriptor],
    *,
    org: str,
    url: str,
    arch: str,
    version: Version | str,
    arch_synonyms: Mapping[str, str] | None = None,
) -> ServiceDescriptor | None:
    """Return the one descriptor for ``org``/``url`` at ``arch`` and ``version``.

    Returns ``None`` when no descriptor applies. Raises:

    * ``AmbiguousConfiguration`` when two or more descriptors apply;
    * ``MissingRequiredField`` when a descriptor lacks ``url`` or ``organization``;
    * ``MalformedVersionRange`` when ``version`` or a descriptor range is malformed.
    """

    if not org or not org.strip():
        raise MissingRequiredField("ServiceCandidate", "organization")
    if not url or not url.strip():
        raise MissingRequiredField("ServiceCandidate", "url")
    if not arch or not arch.strip():
        raise MissingRequiredField("ServiceCandidate", "arch")

    matches = matching_descriptors(
        descriptors,
        org=org,
        url=url,
        arch=arch,
        version=version,
        arch_synonyms=arch_synonyms,
    )
    if len(matches) > 1:
        ranges = [str(item.effective_version_range) for item in matches]
        _logger.warning(
            "service_resolution_ambiguous",
            org=org,
            service_url=url,
            arch=arch,
            version=str(version),
            matches=ranges,
        )
        raise AmbiguousConfiguration(
            org=org, url=url, arch=arch, version=str(version), matches=ranges
        )

    resolved = matches[0] if matches else None
    _logger.debug(
        "service_resolved",
        org=org,
        service_url=url,
        arch=normalize_arch(arch, arch_synonyms),
        version=str(version),
        matched=resolved is not None,
    )
    return resolved


__all__ = ["matching_descriptors", "normalize_arch", "resolve_service_descriptor"]
