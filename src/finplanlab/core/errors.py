"""
Error and warning classes for FinPlanLab.

The projection engine itself never raises on numeric edge cases; these classes
cover the boundaries around it: malformed entity payloads, unreadable state
files and pre-engine validation failures.
"""

from __future__ import annotations

import warnings
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .validation import ValidationReport


class ConfigError(Exception):
    """
    Configuration error while building entities or loading a finance state.

    **Common Causes:**
    - Unknown enum value (e.g. an asset category that is not one of the six)
    - A state file that is not a mapping at the top level
    - Unsupported file format passed to the store

    **Example Usage:**
        ```python
        from finplanlab.core.entities import Asset
        from finplanlab.core.errors import ConfigError

        try:
            Asset.from_dict({"id": "a1", "category": "Crypto"})
        except ConfigError as e:
            print(f"Configuration error: {e}")
        ```
    """

    pass


class StateValidationError(Exception):
    """
    Raised by ``validate_state(..., strict=True)`` when hard errors are present.

    Attributes:
        report: The validation report that failed
    """

    def __init__(self, report: ValidationReport):
        self.report = report
        preview = "; ".join(report.errors[:5])
        more = f" (+{len(report.errors) - 5} more)" if len(report.errors) > 5 else ""
        super().__init__(f"Finance state failed validation: {preview}{more}")


class FinPlanWarning(UserWarning):
    """Warning for suspicious-but-computable inputs (e.g. non-amortizing loans)."""


# Tracks (subject_id, code) pairs already warned about
_warned: set[tuple[str, str]] = set()


def warn_once(code: str, subject_id: str, msg: str, *, category=FinPlanWarning):
    """Warn once per (subject_id, code) to avoid spam across repeated runs."""
    key = (subject_id, code)
    if key not in _warned:
        _warned.add(key)
        warnings.warn(msg, category, stacklevel=3)


def reset_warnings() -> None:
    """Forget which warnings were already emitted (used by tests)."""
    _warned.clear()
