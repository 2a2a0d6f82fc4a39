"""Run identifiers and the software versions recorded in each run summary."""

import importlib.metadata
import re
import secrets
import sqlite3

from oapsync.utils import get_iso_timestamp

__all__ = [
    "RUNTIME_DEPENDENCIES",
    "declared_dependencies",
    "generate_run_id",
    "get_package_version",
    "get_dependency_versions",
    "get_runtime_versions",
]

# Used when oapsync runs from a source tree without installed metadata.
RUNTIME_DEPENDENCIES = ("click", "requests", "tenacity")

_REQUIREMENT_NAME_RE = re.compile(r"[A-Za-z0-9][A-Za-z0-9._-]*")


def generate_run_id() -> str:
    """Generate a unique run identifier.

    The timestamp part is fixed width, so run IDs sort by start time.

    Returns
    -------
    str
        Run ID in format: ISO8601_timestamp__random_suffix.
    """
    return f"{get_iso_timestamp()}__{secrets.token_hex(4)}"


def get_package_version() -> str:
    """Get installed oapsync version, or "unknown"."""
    try:
        return importlib.metadata.version("oapsync")
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


def declared_dependencies() -> tuple[str, ...]:
    """Names of the runtime requirements oapsync was installed with.

    Requirements behind an extra (the test tooling) are left out.
    """
    try:
        requirements = importlib.metadata.requires("oapsync") or []
    except importlib.metadata.PackageNotFoundError:
        return RUNTIME_DEPENDENCIES
    names = []
    for requirement in requirements:
        if "extra ==" in requirement:
            continue
        match = _REQUIREMENT_NAME_RE.match(requirement)
        if match:
            names.append(match.group(0).lower())
    return tuple(names) or RUNTIME_DEPENDENCIES


def get_dependency_versions(packages: list[str]) -> dict[str, str]:
    """Get versions of specified distributions ("unknown" if not installed)."""
    versions: dict[str, str] = {}
    for package in packages:
        try:
            versions[package] = importlib.metadata.version(package)
        except importlib.metadata.PackageNotFoundError:
            versions[package] = "unknown"
    return versions


def get_runtime_versions() -> dict[str, str]:
    """Versions of everything a sync run depends on.

    Covers the declared runtime requirements plus the SQLite library the
    stores run on, whose upsert syntax needs SQLite 3.24 or later.

    Returns
    -------
    dict[str, str]
        Mapping of dependency name to version.
    """
    versions = get_dependency_versions(list(declared_dependencies()))
    versions["sqlite"] = sqlite3.sqlite_version
    return versions
