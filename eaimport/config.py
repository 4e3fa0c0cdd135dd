"""Import settings — optional YAML configuration for the pipeline.

Settings live under a top-level `import:` key so the file can be shared
with other tools:

    import:
      sniff_bytes: 262144
      unknown_type_policy: skip
      source_system: sparx-ea
      extension_tags:
        max_tags: 20
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path

import yaml

from eaimport.apply.applier import UNKNOWN_TYPE_POLICIES
from eaimport.importers.context import DEFAULT_SNIFF_BYTES
from eaimport.ir.report import DEFAULT_MAX_SAMPLES
from eaimport.normalize.shared import ExtensionTagLimits


@dataclass
class ImportSettings:
    sniff_bytes: int = DEFAULT_SNIFF_BYTES
    drop_dangling_relationships: bool = True
    unknown_type_policy: str = "import-as-unknown"
    source_system: str | None = None
    max_issue_samples: int = DEFAULT_MAX_SAMPLES
    extension_tags: ExtensionTagLimits = field(default_factory=ExtensionTagLimits)

    def __post_init__(self):
        if self.unknown_type_policy not in UNKNOWN_TYPE_POLICIES:
            raise ValueError(
                f"unknown_type_policy must be one of {', '.join(UNKNOWN_TYPE_POLICIES)}, "
                f"got {self.unknown_type_policy!r}"
            )


def settings_from_dict(data: dict | None) -> ImportSettings:
    """Build settings from the `import:` mapping. Unknown keys are ignored."""
    data = data or {}
    tags = data.get("extension_tags") or {}
    defaults = ExtensionTagLimits()
    return ImportSettings(
        sniff_bytes=int(data.get("sniff_bytes", DEFAULT_SNIFF_BYTES)),
        drop_dangling_relationships=bool(data.get("drop_dangling_relationships", True)),
        unknown_type_policy=str(data.get("unknown_type_policy", "import-as-unknown")),
        source_system=data.get("source_system") or None,
        max_issue_samples=int(data.get("max_issue_samples", DEFAULT_MAX_SAMPLES)),
        extension_tags=ExtensionTagLimits(
            max_tags=int(tags.get("max_tags", defaults.max_tags)),
            max_key_length=int(tags.get("max_key_length", defaults.max_key_length)),
            max_value_length=int(tags.get("max_value_length", defaults.max_value_length)),
        ),
    )


def load_settings(path: str | Path | None = None) -> ImportSettings:
    """Load settings from a YAML file, or the defaults when no path is given."""
    if path is None:
        return ImportSettings()
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    section = data.get("import") or {}
    if not isinstance(section, dict):
        raise ValueError(f"{path}: 'import' must be a mapping")
    return settings_from_dict(section)


def save_settings(settings: ImportSettings, path: str | Path) -> None:
    with open(path, "w") as f:
        yaml.dump({"import": asdict(settings)}, f, default_flow_style=False, sort_keys=False)
