"""Unit tests for service descriptor resolution."""

from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from edgenode.domain.errors import (
    AmbiguousConfiguration,
    MalformedVersionRange,
    MissingRequiredField,
)
from edgenode.domain.resolution import (
    matching_descriptors,
    normalize_arch,
    resolve_service_descriptor,
)
from edgenode.domain.services import ServiceDescriptor, new_service_descriptor
from edgenode.domain.versions import Version

ORG = "e2edev"
URL = "https://bluehorizon.network/services/netspeed"


def _svc(version_range: str, *, arch: str = "amd64", name: str = "netspeed") -> ServiceDescriptor:
    return new_service_descriptor(URL, ORG, name, arch, version_range)


def _resolve(descriptors: list[ServiceDescriptor], **overrides: str) -> ServiceDescriptor | None:
    candidate = {"org": ORG, "url": URL, "arch": "amd64", "version": "1.0.0"}
    candidate.update(overrides)
    return resolve_service_descriptor(descriptors, **candidate)


def test_overlapping_ranges_are_ambiguous() -> None:
    catalog = [_svc("[1.0.0,2.0.0)", name="a"), _svc("[1.5.0,3.0.0)", name="b")]

    with pytest.raises(AmbiguousConfiguration) as excinfo:
        _resolve(catalog, version="1.7.0")

    error = excinfo.value
    assert error.matches == ("[1.0.0,2.0.0)", "[1.5.0,3.0.0)")
    assert error.org == ORG
    assert error.version == "1.7.0"
    assert "2 descriptors match" in str(error)


def test_single_match_outside_overlap() -> None:
    first = _svc("[1.0.0,2.0.0)", name="a")
    second = _svc("[1.5.0,3.0.0)", name="b")

    assert _resolve([first, second], version="1.2.0") is first
    assert _resolve([first, second], version="2.5.0") is second
    assert _resolve([first, second], version="3.0.0") is None


def test_no_match_for_other_org_or_url() -> None:
    catalog = [_svc("[1.0.0,2.0.0)")]

    assert _resolve(catalog, org="other") is None
    assert _resolve(catalog, url="https://example.com/other") is None
    assert _resolve([], version="1.0.0") is None


def test_arch_synonyms_match_canonical_names() -> None:
    amd = _svc("[1.0.0,2.0.0)", arch="amd64")
    arm = _svc("[1.0.0,2.0.0)", arch="aarch64")

    assert _resolve([amd, arm], arch="x86_64") is amd
    assert _resolve([amd, arm], arch="ARM64") is arm
    assert _resolve([amd, arm], arch="ppc64le") is None


def test_custom_synonym_table_replaces_defaults() -> None:
    amd = _svc("[1.0.0,2.0.0)", arch="amd64")

    found = resolve_service_descriptor(
        [amd], org=ORG, url=URL, arch="pc", version="1.0.0", arch_synonyms={"pc": "amd64"}
    )
    assert found is amd
    assert (
        resolve_service_descriptor(
            [amd], org=ORG, url=URL, arch="x86_64", version="1.0.0", arch_synonyms={}
        )
        is None
    )


def test_descriptor_without_arch_or_range_matches_everything() -> None:
    wildcard = ServiceDescriptor(url=URL, org=ORG, name="any")

    assert _resolve([wildcard], arch="riscv64", version="99.0.0") is wildcard


def test_wildcard_and_specific_descriptor_conflict() -> None:
    catalog = [ServiceDescriptor(url=URL, org=ORG), _svc("[1.0.0,2.0.0)")]

    with pytest.raises(AmbiguousConfiguration) as excinfo:
        _resolve(catalog)
    assert excinfo.value.matches == ("[0.0.0,INFINITY)", "[1.0.0,2.0.0)")


@pytest.mark.parametrize(
    ("field", "overrides"),
    [
        ("organization", {"org": ""}),
        ("url", {"url": "  "}),
        ("arch", {"arch": ""}),
    ],
)
def test_candidate_requires_identity_fields(field: str, overrides: dict[str, str]) -> None:
    with pytest.raises(MissingRequiredField) as excinfo:
        _resolve([_svc("[1.0.0,2.0.0)")], **overrides)
    assert excinfo.value.entity == "ServiceCandidate"
    assert excinfo.value.field == field


def test_descriptor_without_identity_is_rejected() -> None:
    with pytest.raises(MissingRequiredField) as excinfo:
        _resolve([ServiceDescriptor(org=ORG)])
    assert excinfo.value.field == "url"


def test_malformed_candidate_version_or_range_raises() -> None:
    with pytest.raises(MalformedVersionRange):
        _resolve([_svc("[1.0.0,2.0.0)")], version="latest")
    with pytest.raises(MalformedVersionRange):
        _resolve([ServiceDescriptor(url=URL, org=ORG, version_range="[oops")])


def test_matching_descriptors_preserves_input_order() -> None:
    a = _svc("[1.0.0,3.0.0)", name="a")
    b = _svc("[0.5.0,2.0.0)", name="b")

    matches = matching_descriptors([b, a], org=ORG, url=URL, arch="amd64", version="1.0.0")

    assert matches == [b, a]


def test_normalize_arch_folds_case_and_whitespace() -> None:
    assert normalize_arch(" X86_64 ") == "amd64"
    assert normalize_arch("armv7l") == "arm"
    assert normalize_arch("riscv64") == "riscv64"


@settings(max_examples=60, derandomize=True, deadline=None)
@given(
    split=st.integers(min_value=1, max_value=20),
    probe=st.integers(min_value=0, max_value=25),
)
def test_adjacent_half_open_ranges_never_conflict(split: int, probe: int) -> None:
    low = _svc(f"[0.0.0,{split}.0.0)", name="low")
    high = _svc(f"[{split}.0.0,INFINITY)", name="high")

    resolved = _resolve([low, high], version=str(Version(probe, 0, 0)))

    assert resolved is (low if probe < split else high)
