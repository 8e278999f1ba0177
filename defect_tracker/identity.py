"""Stable test identities and the defect IDs derived from them."""

import hashlib
import re
from collections.abc import Collection, Mapping

from defect_tracker.errors import InvalidTestIdentityError

DEFECT_PREFIXES: Mapping[str, str] = {
    "smoke": "SMK",
    "sanity": "SAN",
    "regression": "REG",
    "functional": "FUN",
    "api": "API",
    "ui": "UI",
    "e2e": "E2E",
    "ui_e2e": "E2E",
    "integration": "INT",
    "database": "DB",
    "security": "SEC",
    "performance": "PRF",
    "load": "LOD",
    "stress": "STR",
    "accessibility": "ACC",
    "negative": "NEG",
    "boundary": "BND",
    "monkey": "MNK",
    "exploratory": "EXP",
    "usability": "USA",
    "acceptance": "UAT",
    "compatibility": "CMP",
    "console_logs": "CON",
    "network_logs": "NET",
}
DEFAULT_PREFIX = "DEF"
DEFECT_ID_DIGITS = 8

_LABEL_PREFIX = re.compile(r"^[a-z_]+:\s*")
_WHITESPACE = re.compile(r"\s+")


def validate_test_id(test_id: str) -> str:
    """Return ``test_id`` unchanged if it is usable as a cross-run key.

    Raises:
        InvalidTestIdentityError: If the identity is not a string, is empty,
            or carries leading/trailing whitespace

    """
    if not isinstance(test_id, str):
        raise InvalidTestIdentityError(
            f"Test identity must be a string, got {type(test_id).__name__}"
        )
    if not test_id.strip():
        raise InvalidTestIdentityError("Test identity must not be empty")
    if test_id != test_id.strip():
        raise InvalidTestIdentityError(
            f"Test identity must not have surrounding whitespace: {test_id!r}"
        )
    return test_id


def normalize_name(name: str) -> str:
    """Normalise a test name so cosmetic variations map to one identity."""
    normalized = _LABEL_PREFIX.sub("", name.strip().lower())
    return _WHITESPACE.sub(" ", normalized).strip()


def fingerprint(category: str, name: str, target: str | None = None) -> str:
    """Derive a stable identity for a test that has no natural key.

    The same category, name and target always give the same 16 hex chars,
    independent of process or run.
    """
    components = [f"category:{category.lower()}", f"name:{normalize_name(name)}"]
    if target:
        components.append(f"target:{target}")
    digest = hashlib.sha256("|".join(components).encode()).hexdigest()
    return digest[:16]


def defect_prefix(category: str) -> str:
    """Return the defect ID prefix for a test category."""
    return DEFECT_PREFIXES.get(category.lower(), DEFAULT_PREFIX)


def defect_id_for(
    test_id: str, category: str, taken: Collection[str] = ()
) -> str:
    """Derive the defect ID for a test identity, e.g. ``UI-1A2B3C4D``.

    The suffix is the start of the identity's sha256 digest. When that ID is
    already in ``taken`` the suffix is lengthened until it is unique.

    Raises:
        ValueError: If even the full digest clashes with ``taken``

    """
    prefix = defect_prefix(category)
    digest = hashlib.sha256(validate_test_id(test_id).encode()).hexdigest().upper()
    for digits in range(DEFECT_ID_DIGITS, len(digest) + 1):
        defect_id = f"{prefix}-{digest[:digits]}"
        if defect_id not in taken:
            return defect_id
    raise ValueError(f"No free defect ID for test {test_id!r}")
