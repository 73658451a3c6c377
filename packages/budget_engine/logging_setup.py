"""Logging for ``budget_engine``.

Every engine module logs through ``get_logger("budget_engine.<module>")`` and
never attaches handlers. Entry points (the CLI, a host app) call
:func:`configure_logging` once, which routes the whole package to a single
``rich`` handler on stderr.

Level policy
------------
Propagation, gap-fill and seeding report what they wrote at INFO; swallowed
failures are WARNING; the split controller's created/converted/deleted counts
are DEBUG. The package level comes from ``level`` or
``BUDGET_ENGINE_LOG_LEVEL`` (default INFO). Individual engine modules can be
turned up to DEBUG without flooding the rest, via ``debug_modules`` or
``BUDGET_ENGINE_DEBUG=split,copy_forward``.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable

from rich.console import Console
from rich.logging import RichHandler

PACKAGE_LOGGER = "budget_engine"

# Short names accepted by ``debug_modules`` / ``BUDGET_ENGINE_DEBUG``.
ENGINE_MODULES = (
    "api",
    "copy_forward",
    "initialization",
    "propagation",
    "split",
    "store",
    "transfer",
)

_handler: logging.Handler | None = None


def _parse_level(level: int | str | None) -> int:
    if level is None:
        level = os.getenv("BUDGET_ENGINE_LOG_LEVEL") or logging.INFO
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    numeric = logging.getLevelName(name)
    return numeric if isinstance(numeric, int) else logging.INFO


def _debug_modules(modules: Iterable[str] | None) -> list[str]:
    if modules is None:
        raw = os.getenv("BUDGET_ENGINE_DEBUG", "")
        modules = [m for m in raw.split(",") if m.strip()]
    names = [m.strip().removeprefix(f"{PACKAGE_LOGGER}.") for m in modules]
    unknown = sorted(set(names) - set(ENGINE_MODULES))
    if unknown:
        raise ValueError(f"unknown engine modules for debug logging: {unknown}")
    return names


def configure_logging(
    level: int | str | None = None,
    *,
    debug_modules: Iterable[str] | None = None,
    console: Console | None = None,
) -> None:
    """Route ``budget_engine`` logs to one rich handler; later calls are no-ops.

    Parameters
    ----------
    level:
        Package level (int or name). Defaults to ``BUDGET_ENGINE_LOG_LEVEL``,
        then INFO.
    debug_modules:
        Engine module names (see :data:`ENGINE_MODULES`) to log at DEBUG
        regardless of ``level``. Defaults to ``BUDGET_ENGINE_DEBUG``.
    console:
        Target console; defaults to a stderr console so stdout stays clean for
        command output.
    """

    global _handler
    resolved = _parse_level(level)
    verbose = _debug_modules(debug_modules)
    if _handler is not None:
        return

    pkg_logger = logging.getLogger(PACKAGE_LOGGER)
    for h in list(pkg_logger.handlers):
        if isinstance(h, logging.NullHandler):
            pkg_logger.removeHandler(h)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s", datefmt="[%X]"))
    pkg_logger.addHandler(handler)
    pkg_logger.setLevel(logging.DEBUG if verbose else resolved)
    pkg_logger.propagate = False

    # The handler lets everything through; per-logger levels do the filtering.
    for name in ENGINE_MODULES:
        module_level = logging.DEBUG if name in verbose else resolved
        logging.getLogger(f"{PACKAGE_LOGGER}.{name}").setLevel(module_level)

    _handler = handler


def reset_logging() -> None:
    """Detach the configured handler and restore library defaults."""

    global _handler
    pkg_logger = logging.getLogger(PACKAGE_LOGGER)
    if _handler is not None:
        pkg_logger.removeHandler(_handler)
        _handler = None
    pkg_logger.setLevel(logging.NOTSET)
    pkg_logger.propagate = True
    for name in ENGINE_MODULES:
        logging.getLogger(f"{PACKAGE_LOGGER}.{name}").setLevel(logging.NOTSET)


def get_logger(name: str) -> logging.Logger:
    """Return ``name``'s logger, keeping the package silent until configured."""

    pkg_logger = logging.getLogger(PACKAGE_LOGGER)
    if _handler is None and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = [
    "ENGINE_MODULES",
    "PACKAGE_LOGGER",
    "configure_logging",
    "get_logger",
    "reset_logging",
]
