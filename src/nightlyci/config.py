# config.py
"""
Loading and validating target sets.

A targets file is either YAML:

    workflow:
      max_parallel: 4
    linux:
      - name: centos-7
        platform: centos
        platform_version: 7
        family: distro-specific
    macos:
      - name: macos-x86_64
        platform: macos
        platform_version: x86_64
        family: generic

or a Python file defining `targets()` / `TARGETS` built with `nightlyci.dsl`.
"""
from __future__ import annotations

import os
import re
import runpy
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import yaml

from .errors import ConfigError
from .model import Family, Target, TargetSet, WorkflowSettings

DEFAULT_TARGETS = os.environ.get("NIGHTLYCI_TARGETS", ".github/workflows.src/targets.yml")
DEFAULT_OUTPUT = os.environ.get("NIGHTLYCI_OUTPUT", ".github/workflows/nightly.yml")
DEFAULT_TEMPLATE = os.environ.get("NIGHTLYCI_TEMPLATE") or None

# values substituted into flow lists, quoted conditions and action paths
_IDENT = re.compile(r"[A-Za-z0-9._-]+")

# settings substituted unquoted into action paths and secret expressions
_SETTING_PATTERNS = {
    "pkg_repo": re.compile(r"[A-Za-z0-9._-]+(/[A-Za-z0-9._-]+)*"),
    "pkg_ref": re.compile(r"[A-Za-z0-9._/-]+"),
    "artifact_prefix": re.compile(r"[A-Za-z0-9._/-]+"),
    "upload_secret": re.compile(r"[A-Za-z_][A-Za-z0-9_]*"),
}

TARGET_FIELDS = ("name", "platform", "platform_version", "family")


# ---------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------

def _ident(value: Any, where: str, *, required: bool = True) -> str:
    if value is None or value == "":
        if required:
            raise ConfigError(
                kind="missing_field",
                message=f"{where} is required",
                details={"field": where},
            )
        return ""
    # platform_version: 7 is natural YAML for "7"
    if isinstance(value, int) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str):
        raise ConfigError(
            kind="invalid_type",
            message=f"{where} must be a string, got {type(value).__name__}",
            details={"field": where, "value": repr(value)},
        )
    if not _IDENT.fullmatch(value):
        raise ConfigError(
            kind="invalid_value",
            message=f"{where} may only contain letters, digits, '.', '_' and '-'",
            details={"field": where, "value": repr(value)},
        )
    return value


def parse_family(value: Any, where: str = "family") -> Family:
    if isinstance(value, Family):
        return value
    if value is None:
        raise ConfigError(
            kind="missing_field",
            message=f"{where} is required",
            details={"field": where, "allowed": ", ".join(f.value for f in Family)},
        )
    try:
        return Family(value)
    except ValueError:
        raise ConfigError(
            kind="unknown_family",
            message=f"{where} has unknown value {value!r}",
            details={"field": where, "allowed": ", ".join(f.value for f in Family)},
        ) from None


def make_target(data: Any, where: str = "target") -> Target:
    """Validate one target mapping."""
    if not isinstance(data, Mapping):
        raise ConfigError(
            kind="invalid_type",
            message=f"{where} must be a mapping",
            details={"value": repr(data)},
        )
    unknown = sorted(map(str, set(data) - set(TARGET_FIELDS)))
    if unknown:
        raise ConfigError(
            kind="unknown_field",
            message=f"{where} has unknown field(s): {', '.join(unknown)}",
            details={"allowed": ", ".join(TARGET_FIELDS)},
        )
    return Target(
        name=_ident(data.get("name"), f"{where}.name"),
        platform=_ident(data.get("platform"), f"{where}.platform"),
        platform_version=_ident(
            data.get("platform_version"), f"{where}.platform_version", required=False
        ),
        family=parse_family(data.get("family"), f"{where}.family"),
    )


def _make_group(group: str, entries: Any) -> Tuple[Target, ...]:
    if entries is None:
        return ()
    if isinstance(entries, (str, bytes, Mapping)) or not isinstance(entries, Iterable):
        raise ConfigError(
            kind="invalid_type",
            message=f"{group} must be a list of targets",
            details={"value": repr(entries)},
        )

    out: List[Target] = []
    seen: Dict[str, int] = {}
    for idx, entry in enumerate(entries):
        where = f"{group}[{idx}]"
        tgt = entry if isinstance(entry, Target) else make_target(entry, where)
        if tgt.name in seen:
            raise ConfigError(
                kind="duplicate_target",
                message=f"target name {tgt.name!r} is used twice in {group}",
                details={"first": f"{group}[{seen[tgt.name]}]", "second": where},
            )
        seen[tgt.name] = idx
        out.append(tgt)
    return tuple(out)


def make_target_set(groups: Mapping[str, Any]) -> TargetSet:
    """Validate grouped targets; at least one target overall is required."""
    unknown = sorted(map(str, set(groups) - set(TargetSet.GROUPS)))
    if unknown:
        raise ConfigError(
            kind="unknown_group",
            message=f"unknown target group(s): {', '.join(unknown)}",
            details={"allowed": ", ".join(TargetSet.GROUPS)},
        )
    ts = TargetSet(**{g: _make_group(g, groups.get(g)) for g in TargetSet.GROUPS})
    if not len(ts):
        raise ConfigError(
            kind="no_targets",
            message="no targets configured; a workflow needs at least one job",
            details={"groups": ", ".join(TargetSet.GROUPS)},
        )
    return ts


def _check_setting(key: str, value: str) -> None:
    if not value:
        raise ConfigError(
            kind="invalid_value",
            message=f"workflow.{key} must not be empty",
            details={"field": f"workflow.{key}"},
        )
    pattern = _SETTING_PATTERNS.get(key)
    if pattern is not None and not pattern.fullmatch(value):
        raise ConfigError(
            kind="invalid_value",
            message=f"workflow.{key} does not match {pattern.pattern}",
            details={"field": f"workflow.{key}", "value": repr(value)},
        )


def make_settings(data:Optional[Mapping[str, Any]] = None) -> WorkflowSettings:
    """Validate the `workflow:` section against WorkflowSettings."""
    if data is None:
        return WorkflowSettings()
    if not isinstance(data, Mapping):
        raise ConfigError(
            kind="invalid_type",
            message="workflow must be a mapping",
            details={"value": repr(data)},
        )

    known = {f.name: f for f in fields(WorkflowSettings)}
    defaults = WorkflowSettings()
    values: Dict[str, Any] = {}
    for key, value in data.items():
        if key not in known:
            raise ConfigError(
                kind="unknown_field",
                message=f"workflow has unknown setting {key!r}",
                details={"allowed": ", ".join(known)},
            )
        expected = type(getattr(defaults, key))
        # bool is an int subclass; keep the two apart
        if type(value) is not expected:
            raise ConfigError(
                kind="invalid_type",
                message=f"workflow.{key} must be {expected.__name__}, got {type(value).__name__}",
                details={"value": repr(value)},
            )
        if isinstance(value, str):
            _check_setting(key, value)
        values[key] = value

    if values.get("max_parallel", 1) < 1:
        raise ConfigError(
            kind="invalid_value",
            message="workflow.max_parallel must be at least 1",
            details={"value": values["max_parallel"]},
        )
    return WorkflowSettings(**values)


# ---------------------------------------------------------------------
# Loading (YAML file / Python file)
# ---------------------------------------------------------------------

def _load_yaml(path: Path) -> Tuple[TargetSet, WorkflowSettings]:
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except yaml.YAMLError as e:
        raise ConfigError(
            kind="invalid_yaml",
            message=f"could not parse {path}",
            details={"error": str(e).replace("\n", " ")},
        ) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(
            kind="invalid_type",
            message=f"{path} must contain a mapping at top level",
            details={"got": type(data).__name__},
        )

    data = dict(data)
    settings = make_settings(data.pop("workflow", None))
    return make_target_set(data), settings


def _load_python(path: Path) -> Tuple[TargetSet, WorkflowSettings]:
    module_name = f"nightlyci_targets_{path.stem}"
    globals_dict = runpy.run_path(str(path), run_name=module_name)

    result: Any = None
    if "targets" in globals_dict and callable(globals_dict["targets"]):
        result = globals_dict["targets"]()
    elif "TARGETS" in globals_dict:
        result = globals_dict["TARGETS"]

    if isinstance(result, TargetSet):
        return result, WorkflowSettings()
    if (
        isinstance(result, tuple)
        and len(result) == 2
        and isinstance(result[0], TargetSet)
        and isinstance(result[1], WorkflowSettings)
    ):
        return result
    raise ConfigError(
        kind="invalid_workflow_file",
        message=(
            "Targets file must return/define a TargetSet. "
            "Define targets() -> TargetSet or TARGETS = target_set(linux=[...], macos=[...])."
        ),
        details={"path": str(path), "got": type(result).__name__},
    )


def load_target_set(path: str | Path) -> Tuple[TargetSet, WorkflowSettings]:
    """
    Load targets and pipeline settings from a YAML or Python file.

    Returns:
      (TargetSet, WorkflowSettings)

    Raises:
      ConfigError: the file is missing, has an unsupported suffix, or
                   contains malformed targets.
    """
    p = Path(path).expanduser()
    if not p.is_file():
        raise ConfigError(
            kind="not_found",
            message=f"targets file not found: {p}",
            details={"path": str(p)},
        )
    if p.suffix in (".yml", ".yaml"):
        return _load_yaml(p)
    if p.suffix == ".py":
        return _load_python(p.resolve())
    raise ConfigError(
        kind="unsupported_format",
        message=f"targets file must be .yml, .yaml or .py, got: {p.name}",
        details={"path": str(p)},
    )
