"""Command-line interface router for edgenode."""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final, cast

import yaml

from edgenode.catalog import CatalogError, ServiceCatalog
from edgenode.config import (
    ConfigLoadError,
    ConfigValidationError,
    arch_synonyms_from_config,
    dump_effective_config,
    load_config,
    redact_config,
)
from edgenode.domain import rendering
from edgenode.domain.configstate import ConfigPhase
from edgenode.domain.device import advance_configuration, from_persisted
from edgenode.domain.errors import EdgeNodeModelError
from edgenode.domain.services import ServiceDescriptor
from edgenode.observability import correlation_scope, setup_logging, shutdown_logging
from edgenode.persistence import PersistedDevice
from edgenode.ui.render import CLIRenderer, create_renderer

EXIT_NO_MATCH: Final[int] = 1
EXIT_USAGE: Final[int] = 2

_YAML_SUFFIXES: Final[frozenset[str]] = frozenset({".yaml", ".yml"})


@dataclass(frozen=True, slots=True)
class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    message: str
    exit_code: int = EXIT_USAGE

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router."""

    parser = argparse.ArgumentParser(
        prog="edgenode",
        description=(
            "edgenode: device registration and service configuration model.\n\n"
            "Common workflows:\n"
            "  edgenode describe-device device.json     Redacted view of a stored device\n"
            "  edgenode resolve --org o --url u ...     Pick the descriptor for a service\n"
            "  edgenode list-services                   Show the service catalog\n"
            "  edgenode show-config                     Show effective config (redacted)\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to edgenode TOML config (default: ./edgenode.toml if present).",
    )
    common.add_argument(
        "--log-level",
        default=None,
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Override [observability] log_level.",
    )
    common.add_argument("--json", action="store_true", default=False, help="Emit JSON output")
    common.add_argument(
        "--no-color",
        action="store_true",
        default=False,
        help="Disable colored output (also respects NO_COLOR env var).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # describe-device -------------------------------------------------------
    describe_parser = subparsers.add_parser(
        "describe-device",
        parents=[common],
        help="Render the API view of a persisted device record",
        description=(
            "Load a persisted device record (JSON or YAML) and print the value an API\n"
            "caller would receive. The device token is never printed.\n\n"
            "Examples:\n"
            "  edgenode describe-device device.json\n"
            "  edgenode describe-device device.yaml --transition configuring --json\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    describe_parser.add_argument("device", help="Path to the persisted device record")
    describe_parser.add_argument(
        "--transition",
        default=None,
        choices=tuple(phase.value for phase in ConfigPhase),
        help="Apply a configuration state transition before rendering.",
    )
    describe_parser.set_defaults(handler=_cmd_describe_device)

    # resolve ---------------------------------------------------------------
    resolve_parser = subparsers.add_parser(
        "resolve",
        parents=[common],
        help="Select the service descriptor for org/url/arch/version",
        description=(
            "Resolve the single service descriptor that applies to a service candidate.\n"
            "Exits 1 when nothing matches and 2 when the catalog is ambiguous.\n\n"
            "Examples:\n"
            "  edgenode resolve --org e2edev --url https://ex.com/gps --arch x86_64 "
            "--version 1.2.0\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    resolve_parser.add_argument("--catalog", default=None, help="Service catalog file")
    resolve_parser.add_argument("--org", required=True, help="Service organization")
    resolve_parser.add_argument("--url", required=True, help="Service URL")
    resolve_parser.add_argument("--arch", required=True, help="Device architecture")
    resolve_parser.add_argument("--version", required=True, help="Candidate service version")
    resolve_parser.set_defaults(handler=_cmd_resolve)

    # list-services ---------------------------------------------------------
    list_parser = subparsers.add_parser(
        "list-services",
        parents=[common],
        help="List the descriptors of a service catalog",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    list_parser.add_argument("--catalog", default=None, help="Service catalog file")
    list_parser.add_argument("--org", default=None, help="Only show this organization")
    list_parser.set_defaults(handler=_cmd_list_services)

    # show-config -----------------------------------------------------------
    config_parser = subparsers.add_parser(
        "show-config",
        parents=[common],
        help="Show effective configuration (redacted)",
        description=(
            "Display the effective config after merging defaults, file, env and CLI.\n"
            "Sensitive values are redacted.\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    config_parser.set_defaults(handler=_cmd_show_config)

    return parser


# ---------------------------------------------------------------------------
# Entrypoints
# ---------------------------------------------------------------------------


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return EXIT_USAGE

    try:
        config = _load_effective_config(namespace)
        setup_logging(config["observability"], node_id=config["node"]["node_id"])
        try:
            with correlation_scope(node_id=config["node"]["node_id"]):
                return int(handler(namespace, config))
        finally:
            shutdown_logging()
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_describe_device(args: argparse.Namespace, config: Mapping[str, object]) -> int:
    del config
    raw = _read_mapping(Path(args.device))
    try:
        record = PersistedDevice.from_dict(raw)
        device = from_persisted(record)
    except ValueError as exc:
        raise CLIError(f"{args.device}: {exc}") from exc

    with correlation_scope(device_id=record.id, org=record.org):
        if args.transition is not None:
            try:
                device = advance_configuration(device, args.transition)
            except EdgeNodeModelError as exc:
                raise CLIError(str(exc)) from exc

    print(device.to_json() if args.json else device.describe())
    return 0


def _cmd_resolve(args: argparse.Namespace, config: Mapping[str, object]) -> int:
    catalog = _load_catalog(args, config)
    with correlation_scope(org=args.org, service_url=args.url):
        try:
            resolved = catalog.resolve(
                org=args.org,
                url=args.url,
                arch=args.arch,
                version=args.version,
                arch_synonyms=arch_synonyms_from_config(config),
            )
        except EdgeNodeModelError as exc:
            raise CLIError(str(exc)) from exc

    if args.json:
        _emit_json(
            {
                "command": "resolve",
                "matched": resolved is not None,
                "service": None if resolved is None else resolved.to_dict(),
            }
        )
    elif resolved is None:
        print(
            f"no service configuration for {args.org}/{args.url} "
            f"arch={args.arch} version={args.version}"
        )
    else:
        print(resolved.describe())
    return 0 if resolved is not None else EXIT_NO_MATCH


def _cmd_list_services(args: argparse.Namespace, config: Mapping[str, object]) -> int:
    catalog = _load_catalog(args, config)
    descriptors = [
        item for item in catalog.descriptors if args.org is None or item.org == args.org
    ]

    if args.json:
        _emit_json(
            {
                "command": "list-services",
                "services": [item.to_dict() for item in descriptors],
            }
        )
        return 0

    renderer = _get_renderer(args)
    if not descriptors:
        renderer.text("no services configured")
        return 0
    renderer.table(
        ("Organization", "URL", "Name", "Arch", "Versions", "Auto", "Active", "Attributes"),
        [_service_row(item) for item in descriptors],
        title=None if catalog.source is None else catalog.source.name,
    )
    return 0


def _cmd_show_config(args: argparse.Namespace, config: Mapping[str, object]) -> int:
    if args.json:
        print(dump_effective_config(config))
        return 0
    renderer = _get_renderer(args)
    renderer.text(
        json.dumps(redact_config(config), indent=2, sort_keys=True, ensure_ascii=False)
    )
    return 0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _emit_json(payload: Mapping[str, object]) -> None:
    print(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))


def _get_renderer(args: argparse.Namespace) -> CLIRenderer:
    return create_renderer(no_color=bool(getattr(args, "no_color", False)))


def _load_effective_config(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, object] = {}
    if args.log_level is not None:
        overrides["observability.log_level"] = args.log_level
    try:
        return load_config(args.config_path, cli_overrides=overrides)
    except (ConfigLoadError, ConfigValidationError) as exc:
        raise CLIError(str(exc)) from exc


def _load_catalog(args: argparse.Namespace, config: Mapping[str, object]) -> ServiceCatalog:
    path = args.catalog
    if path is None:
        paths = cast("Mapping[str, object]", config["paths"])
        path = str(paths["catalog"])
    try:
        return ServiceCatalog.load(path)
    except CatalogError as exc:
        raise CLIError(str(exc)) from exc


def _read_mapping(path: Path) -> Mapping[str, object]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            if path.suffix.lower() in _YAML_SUFFIXES:
                loaded = cast("object", yaml.safe_load(handle))
            else:
                loaded = cast("object", json.load(handle))
    except OSError as exc:
        raise CLIError(f"unable to read {path}: {exc}") from exc
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise CLIError(f"{path}: invalid document ({exc})") from exc
    if not isinstance(loaded, Mapping):
        raise CLIError(f"{path}: expected a mapping at top level")
    return cast("Mapping[str, object]", loaded)


def _service_row(descriptor: ServiceDescriptor) -> tuple[str, ...]:
    return (
        rendering.text(descriptor.org),
        rendering.text(descriptor.url),
        rendering.text(descriptor.name),
        rendering.text(descriptor.arch),
        rendering.text(descriptor.version_range),
        rendering.text(descriptor.effective_auto_upgrade),
        rendering.text(descriptor.effective_active_upgrade),
        str(len(descriptor.attributes or ())),
    )


__all__ = ["CLIError", "build_parser", "run_cli"]
