# src/nightlyci/dsl.py
from __future__ import annotations

from typing import Any, Iterable, Tuple, Union

from .config import make_settings, make_target, make_target_set
from .model import Family, Target, TargetSet, WorkflowSettings


# ---------------------------------------------------------------------
# Target helper
# ---------------------------------------------------------------------

def target(
    name: str,
    platform: str,
    platform_version: str | int = "",
    *,
    generic: bool = False,
) -> Target:
    """Create a validated target."""
    return make_target(
        {
            "name": name,
            "platform": platform,
            "platform_version": platform_version,
            "family": Family.GENERIC if generic else Family.DISTRO_SPECIFIC,
        },
        where=f"target({name!r})",
    )


# ---------------------------------------------------------------------
# Target set helper (single-file story)
# ---------------------------------------------------------------------

def target_set(
    *,
    linux: Iterable[Target] = (),
    macos: Iterable[Target] = (),
    **settings: Any,
) -> Union[TargetSet, Tuple[TargetSet, WorkflowSettings]]:
    """
    Target set definition helper. Use this name so you can define your own
    def targets(): return target_set(...).

    Users can write, in nightly_targets.py:
        from nightlyci.dsl import target, target_set

        TARGETS = target_set(
            linux=[target("centos-7", "centos", 7)],
            macos=[target("macos-x86_64", "macos", "x86_64", generic=True)],
        )

    Keyword settings (max_parallel=2, ...) override WorkflowSettings; when
    any are given a (TargetSet, WorkflowSettings) pair is returned.
    """
    ts = make_target_set({"linux": list(linux), "macos": list(macos)})
    if settings:
        return ts, make_settings(settings)
    return ts
