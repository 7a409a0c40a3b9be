# model.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class Family(str, Enum):
    """Build variant of a target."""
    GENERIC = "generic"
    DISTRO_SPECIFIC = "distro-specific"


@dataclass(frozen=True)
class Target:
    """One platform/version combination to build and publish for."""
    name: str
    platform: str
    family: Family
    platform_version: str = ""

    @property
    def generic(self) -> bool:
        return self.family is Family.GENERIC

    @property
    def slug(self) -> str:
        # addresses the external build/upload action, e.g. "centos-7"
        if self.platform_version:
            return f"{self.platform}-{self.platform_version}"
        return self.platform


@dataclass(frozen=True)
class TargetSet:
    """Targets grouped by OS family, in declaration order."""
    linux: Tuple[Target, ...] = ()
    macos: Tuple[Target, ...] = ()

    GROUPS = ("linux", "macos")

    def groups(self) -> Dict[str, Tuple[Target, ...]]:
        return {g: getattr(self, g) for g in self.GROUPS}

    def __len__(self) -> int:
        return len(self.linux) + len(self.macos)


@dataclass(frozen=True)
class WorkflowSettings:
    """
    Fixed values of the generated pipeline.

    Defaults reproduce the nightly pipeline as it is published today; any of
    them can be overridden from the `workflow:` section of a targets file.
    """
    name: str = "Build Test and Publish Nightly Packages"
    cron: str = "0 0 * * *"
    dispatch_type: str = "nightly-build"
    branch: str = "nightly"
    max_parallel: int = 4
    subdist: str = "nightly"
    revision: str = "<current-date>"
    package: str = "edgedbpkg.edgedbcli:EdgeDBCLI"
    pkg_repo: str = "edgedb/edgedb-pkg"
    pkg_ref: str = "master"
    extra_optimizations: bool = True
    upload_secret: str = "PACKAGE_UPLOAD_SSH_KEY"
    artifact_prefix: str = "builds-"

    @property
    def pkg_checkout(self) -> str:
        # local directory the package repository is checked out into
        return self.pkg_repo.rstrip("/").split("/")[-1]


# ---------------------------------------------------------------------
# Rendered workflow objects
# ---------------------------------------------------------------------

def _env_value(value: Any) -> str:
    # the runner exports YAML booleans as "true"/"false"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@dataclass(frozen=True)
class Step:
    """A single step inside a rendered CI job."""
    name: Optional[str] = None
    uses: Optional[str] = None
    run: Optional[str] = None
    condition: Optional[str] = None
    env: Dict[str, str] = field(default_factory=dict)
    with_: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Step:
        return cls(
            name=data.get("name"),
            uses=data.get("uses"),
            run=data.get("run"),
            condition=data.get("if"),
            env={k: _env_value(v) for k, v in (data.get("env") or {}).items()},
            with_=dict(data.get("with") or {}),
        )


@dataclass
class Job:
    """
    A rendered CI job: steps + dependencies + matrix.

    `needs` holds the names of jobs that must finish before this one.
    """
    name: str
    steps: list[Step]
    runs_on: str = ""
    needs: list[str] = field(default_factory=list)
    matrix: list[str] = field(default_factory=list)
    max_parallel: Optional[int] = None

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> Job:
        strategy = data.get("strategy") or {}
        matrix = strategy.get("matrix") or {}
        needs = data.get("needs") or []
        if isinstance(needs, str):
            needs = [needs]
        return cls(
            name=name,
            steps=[Step.from_dict(s) for s in data.get("steps") or []],
            runs_on=str(data.get("runs-on", "")),
            needs=list(needs),
            matrix=[str(t) for t in matrix.get("target") or []],
            max_parallel=strategy.get("max-parallel"),
        )

    def steps_for(self, target: str) -> list[Step]:
        """Steps guarded by `matrix.target == '<target>'`."""
        cond = f"matrix.target == '{target}'"
        return [s for s in self.steps if s.condition == cond]
