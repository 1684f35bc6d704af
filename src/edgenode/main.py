"""Executable CLI entrypoint for ``edgenode``."""

from __future__ import annotations

import sys
import traceback
from enum import IntEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence


class ExitCode(IntEnum):
    """Deterministic process exit-code contract."""

    SUCCESS = 0
    NO_MATCH = 1
    CONFIG_ERROR = 2
    INTERNAL_ERROR = 4


def cli_entrypoint(argv: Sequence[str] | None = None) -> int:
    """Entrypoint used by ``python -m edgenode`` and the console script."""

    try:
        from edgenode.ui.cli import run_cli

        return _normalize_exit_code(run_cli(argv))
    except SystemExit as exc:
        # argparse exits on --help and usage errors.
        return _normalize_exit_code(exc.code)
    except Exception as exc:  # noqa: BLE001 - CLI boundary normalization.
        exit_code = _route_exception(exc)
        _emit_failure(exc, exit_code)
        return int(exit_code)


def _normalize_exit_code(raw_code: object) -> int:
    if isinstance(raw_code, int) and raw_code in {code.value for code in ExitCode}:
        return raw_code
    if raw_code is None:
        return int(ExitCode.SUCCESS)
    if isinstance(raw_code, str) and raw_code.strip():
        _write_stderr(raw_code.strip())
    return int(ExitCode.INTERNAL_ERROR)


def _route_exception(exc: BaseException) -> ExitCode:
    from edgenode.catalog import CatalogError
    from edgenode.config import ConfigLoadError, ConfigValidationError
    from edgenode.domain.errors import EdgeNodeModelError

    condition_types = (CatalogError, ConfigLoadError, ConfigValidationError, EdgeNodeModelError)
    for item in _iter_exception_chain(exc):
        if isinstance(item, condition_types):
            return ExitCode.CONFIG_ERROR
        if isinstance(item, (FileNotFoundError, NotADirectoryError, PermissionError, ValueError)):
            return ExitCode.CONFIG_ERROR
    return ExitCode.INTERNAL_ERROR


def _iter_exception_chain(exc: BaseException) -> list[BaseException]:
    seen: set[int] = set()
    items: list[BaseException] = []
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        items.append(current)
        if current.__cause__ is not None:
            current = current.__cause__
        elif current.__context__ is not None and not current.__suppress_context__:
            current = current.__context__
        else:
            current = None
    return items


def _emit_failure(exc: BaseException, exit_code: ExitCode) -> None:
    if exit_code is ExitCode.INTERNAL_ERROR:
        traceback.print_exception(type(exc), exc, exc.__traceback__, file=sys.stderr)
        return
    _write_stderr(str(exc).strip() or exc.__class__.__name__)


def _write_stderr(message: str) -> None:
    sys.stderr.write(message.rstrip("\n") + "\n")


__all__ = ["ExitCode", "cli_entrypoint"]
