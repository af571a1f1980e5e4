"""Secret value redaction.

Every secret value that leaves kubegate passes through this module.  The
marker is fixed and independent of the input so nothing about the real
value (length, emptiness) can be inferred from it.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

REDACTED = "REDACTED"


def redact(value: object = None) -> str:
    """Return the redaction marker for any *value*, including None and ""."""
    return REDACTED


def may_disclose(show_values: bool | None, read_only: bool) -> bool:
    """Disclosure requires an explicit request and read-only mode being off."""
    return show_values is True and not read_only


def shape_secret_data(
    raw: Mapping[str, object] | None,
    keys: Iterable[str] | None,
    disclose: bool,
) -> dict[str, str]:
    """Build the caller-visible mapping for a secret's data.

    Args:
        raw:      The secret's ``data`` field (base64 strings) or None.
        keys:     Keys to return; all keys of *raw* when empty or None.
        disclose: Result of may_disclose().

    Keys that are requested but absent from the secret come back redacted.
    """
    raw = raw or {}
    selected = list(keys) if keys else list(raw.keys())
    shaped: dict[str, str] = {}
    for key in selected:
        value = raw.get(key)
        if disclose and isinstance(value, str):
            shaped[key] = value
        else:
            shaped[key] = redact(value)
    return shaped
