"""Schema version compatibility for native backups.

A backup stores its schema major version in ``schemaVersion`` and the minor
version in ``schemaMinorVersion``. Only the major version gates an import:

    - Same major, same minor: compatible
    - Same major, different minor: compatible with warnings
    - Different major: incompatible
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple

SCHEMA_MAJOR_VERSION = 1
SCHEMA_MINOR_VERSION = 0


class CompatibilityStatus(Enum):
    COMPATIBLE = "compatible"
    COMPATIBLE_WITH_WARNINGS = "compatible_with_warnings"
    INCOMPATIBLE = "incompatible"


@dataclass
class CompatibilityReport:
    """Outcome of comparing a backup's schema version with ours.

    Attributes:
        status: Overall compatibility status
        backup_version: (major, minor) found in the backup
        current_version: (major, minor) this build writes
        warnings: Non-fatal differences
        errors: Reasons the import cannot proceed
    """
    status: CompatibilityStatus
    backup_version: Tuple[int, int]
    current_version: Tuple[int, int]
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def is_safe_to_import(self) -> bool:
        return self.status != CompatibilityStatus.INCOMPATIBLE

    def summary(self) -> str:
        """Human-readable multi-line summary."""
        lines = [
            f"Compatibility: {self.status.value}",
            f"Backup schema: v{format_version(self.backup_version)}",
            f"Current schema: v{format_version(self.current_version)}",
        ]
        if self.warnings:
            lines.append("Warnings:")
            lines.extend(f"  - {warning}" for warning in self.warnings)
        if self.errors:
            lines.append("Errors:")
            lines.extend(f"  - {error}" for error in self.errors)
        return "\n".join(lines)


def format_version(version):
    return ".".join(str(part) for part in version)


def check_schema_compatibility(backup_major, backup_minor=0,
                               current_major=SCHEMA_MAJOR_VERSION,
                               current_minor=SCHEMA_MINOR_VERSION) -> CompatibilityReport:
    """Compare a backup's schema version against the current one.

    Args:
        backup_major: schemaVersion stored in the backup
        backup_minor: schemaMinorVersion stored in the backup
        current_major: Major version of this build
        current_minor: Minor version of this build

    Returns:
        CompatibilityReport
    """
    warnings = []
    errors = []

    if backup_major != current_major:
        errors.append(
            f"Major version mismatch: backup is v{backup_major}.x, this app reads v{current_major}.x"
        )
        status = CompatibilityStatus.INCOMPATIBLE
    elif backup_minor > current_minor:
        warnings.append(
            f"Backup was written by a newer schema (v{backup_major}.{backup_minor}); "
            f"fields unknown to v{current_major}.{current_minor} are ignored"
        )
        status = CompatibilityStatus.COMPATIBLE_WITH_WARNINGS
    elif backup_minor < current_minor:
        warnings.append(
            f"Backup was written by an older schema (v{backup_major}.{backup_minor}); "
            f"missing fields take their defaults"
        )
        status = CompatibilityStatus.COMPATIBLE_WITH_WARNINGS
    else:
        status = CompatibilityStatus.COMPATIBLE

    return CompatibilityReport(
        status=status,
        backup_version=(backup_major, backup_minor),
        current_version=(current_major, current_minor),
        warnings=warnings,
        errors=errors,
    )
