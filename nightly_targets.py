# nightly_targets.py
# The same targets as .github/workflows.src/targets.yml, declared in Python.
# nightlyci generate --targets nightly_targets.py
from __future__ import annotations

from nightlyci.dsl import target, target_set


def targets():
    distros = {
        "debian": ["stretch", "buster"],
        "ubuntu": ["xenial", "bionic", "focal"],
        "centos": ["7", "8"],
    }
    linux = [
        target(f"{platform}-{version}", platform, version)
        for platform, versions in distros.items()
        for version in versions
    ]
    linux.append(target("linux-x86_64", "linux", "x86_64", generic=True))

    return target_set(
        linux=linux,
        macos=[target("macos-x86_64", "macos", "x86_64", generic=True)],
    )
