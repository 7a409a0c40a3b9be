"""
Pytest fixtures shared by the nightlyci tests.
"""

import textwrap

import pytest

from nightlyci.model import Family, Target, TargetSet


@pytest.fixture
def centos7():
    return Target(name="centos-7", platform="centos", platform_version="7", family=Family.DISTRO_SPECIFIC)


@pytest.fixture
def linux_generic():
    return Target(name="linux-x86_64", platform="linux", platform_version="x86_64", family=Family.GENERIC)


@pytest.fixture
def macos_generic():
    return Target(name="macos-x86_64", platform="macos", platform_version="x86_64", family=Family.GENERIC)


@pytest.fixture
def full_set(centos7, linux_generic, macos_generic):
    """Two linux targets (one generic) and one macOS target."""
    return TargetSet(linux=(centos7, linux_generic), macos=(macos_generic,))


@pytest.fixture
def write_file(tmp_path):
    """Write dedented text to tmp_path/<name> and return the path."""
    def _write(name, text):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(text).lstrip(), encoding="utf-8")
        return path
    return _write


@pytest.fixture
def targets_yml(write_file):
    return write_file(
        "targets.yml",
        """
        linux:
          - name: centos-7
            platform: centos
            platform_version: 7
            family: distro-specific
          - name: linux-x86_64
            platform: linux
            platform_version: x86_64
            family: generic
        macos:
          - name: macos-x86_64
            platform: macos
            platform_version: x86_64
            family: generic
        """,
    )
