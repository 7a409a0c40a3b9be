"""
Tests for loading and validating target sets (nightlyci.config, nightlyci.dsl).
"""

import pytest

from nightlyci.config import load_target_set, make_settings, make_target, make_target_set
from nightlyci.dsl import target, target_set
from nightlyci.errors import ConfigError
from nightlyci.model import Family, Target, TargetSet, WorkflowSettings


# ============================================================================
# YAML FILES
# ============================================================================

def test_load_yaml_keeps_group_order(targets_yml, centos7, linux_generic, macos_generic):
    ts, settings = load_target_set(targets_yml)

    assert ts.linux == (centos7, linux_generic)
    assert ts.macos == (macos_generic,)
    assert settings == WorkflowSettings()


def test_integer_platform_version_becomes_string(targets_yml):
    ts, _ = load_target_set(targets_yml)
    assert ts.linux[0].platform_version == "7"


def test_missing_platform_version_is_empty(write_file):
    path = write_file(
        "t.yml",
        """
        linux:
          - name: generic
            platform: linux
            family: generic
        """,
    )
    ts, _ = load_target_set(path)
    assert ts.linux[0].platform_version == ""
    assert ts.linux[0].slug == "linux"


def test_workflow_section_overrides_settings(write_file):
    path = write_file(
        "t.yml",
        """
        workflow:
          max_parallel: 2
          subdist: testing
          extra_optimizations: false
        macos:
          - name: macos-x86_64
            platform: macos
            platform_version: x86_64
            family: generic
        """,
    )
    _, settings = load_target_set(path)
    assert settings.max_parallel == 2
    assert settings.subdist == "testing"
    assert settings.extra_optimizations is False
    assert settings.package == WorkflowSettings().package


def test_empty_group_is_allowed(write_file):
    path = write_file(
        "t.yml",
        """
        linux: []
        macos:
          - name: macos-x86_64
            platform: macos
            family: generic
        """,
    )
    ts, _ = load_target_set(path)
    assert ts.linux == ()
    assert len(ts) == 1


@pytest.mark.parametrize(
    "body, kind",
    [
        ("linux:\n  - name: a\n    platform: debian\n", "missing_field"),
        ("linux:\n  - name: a\n    platform: debian\n    family: nightly\n", "unknown_family"),
        ("linux:\n  - platform: debian\n    family: generic\n", "missing_field"),
        ("linux:\n  - name: a\n    family: generic\n", "missing_field"),
        ("linux:\n  - name: a\n    platform: debian\n    family: generic\n    arch: x86\n", "unknown_field"),
        ("linux:\n  - name: \"a b\"\n    platform: debian\n    family: generic\n", "invalid_value"),
        ("linux:\n  - name: \"it's\"\n    platform: debian\n    family: generic\n", "invalid_value"),
        ("linux:\n  - name: a\n    platform: [debian]\n    family: generic\n", "invalid_type"),
        ("linux:\n  - name: a\n    platform: debian\n    platform_version: true\n    family: generic\n", "invalid_type"),
        ("linux: centos-7\n", "invalid_type"),
        ("linux:\n  - centos-7\n", "invalid_type"),
        ("windows:\n  - name: a\n    platform: windows\n    family: generic\n", "unknown_group"),
        ("linux: []\nmacos: []\n", "no_targets"),
        ("{}\n", "no_targets"),
        ("- linux\n", "invalid_type"),
        ("linux: [\n", "invalid_yaml"),
        ("workflow:\n  max_parallel: '4'\nlinux:\n  - {name: a, platform: b, family: generic}\n", "invalid_type"),
        ("workflow:\n  max_parallel: 0\nlinux:\n  - {name: a, platform: b, family: generic}\n", "invalid_value"),
        ("workflow:\n  runner: self-hosted\nlinux:\n  - {name: a, platform: b, family: generic}\n", "unknown_field"),
        ("linux:\n  - {name: a, platform: b, family: generic, 1: x, foo: y}\n", "unknown_field"),
        ("1: []\nfoo: []\nlinux:\n  - {name: a, platform: b, family: generic}\n", "unknown_group"),
        ("linux:\n  - name: \"centos-7\\n\"\n    platform: centos\n    family: generic\n", "invalid_value"),
        ("workflow:\n  upload_secret: ''\nlinux:\n  - {name: a, platform: b, family: generic}\n", "invalid_value"),
        ("workflow:\n  pkg_repo: ''\nlinux:\n  - {name: a, platform: b, family: generic}\n", "invalid_value"),
        ("workflow:\n  artifact_prefix: ''\nlinux:\n  - {name: a, platform: b, family: generic}\n", "invalid_value"),
        ("workflow:\n  name: ''\nlinux:\n  - {name: a, platform: b, family: generic}\n", "invalid_value"),
        ("workflow:\n  pkg_ref: \"master\\n      if: always()\"\nlinux:\n  - {name: a, platform: b, family: generic}\n", "invalid_value"),
        ("workflow:\n  pkg_repo: edgedb/\nlinux:\n  - {name: a, platform: b, family: generic}\n", "invalid_value"),
        ("workflow:\n  upload_secret: 'KEY }}'\nlinux:\n  - {name: a, platform: b, family: generic}\n", "invalid_value"),
        ("workflow:\n  upload_secret: 1KEY\nlinux:\n  - {name: a, platform: b, family: generic}\n", "invalid_value"),
    ],
)
def test_malformed_files_are_rejected(write_file, body, kind):
    path = write_file("bad.yml", body)
    with pytest.raises(ConfigError) as exc:
        load_target_set(path)
    assert exc.value.kind == kind


def test_duplicate_names_within_group_are_rejected(write_file):
    path = write_file(
        "dup.yml",
        """
        linux:
          - {name: centos-7, platform: centos, platform_version: 7, family: distro-specific}
          - {name: centos-7, platform: centos, platform_version: 8, family: distro-specific}
        """,
    )
    with pytest.raises(ConfigError) as exc:
        load_target_set(path)
    assert exc.value.kind == "duplicate_target"
    assert exc.value.details == {"first": "linux[0]", "second": "linux[1]"}


def test_same_name_in_different_groups_is_allowed():
    ts = make_target_set(
        {
            "linux": [{"name": "x86_64", "platform": "linux", "family": "generic"}],
            "macos": [{"name": "x86_64", "platform": "macos", "family": "generic"}],
        }
    )
    assert ts.linux[0].name == ts.macos[0].name


def test_error_names_offending_entry():
    with pytest.raises(ConfigError) as exc:
        make_target_set(
            {
                "linux": [
                    {"name": "a", "platform": "debian", "family": "generic"},
                    {"name": "b", "platform": "debian", "family": "rolling"},
                ]
            }
        )
    assert "linux[1].family" in exc.value.message
    assert "unknown_family" in str(exc.value)


def test_missing_file():
    with pytest.raises(ConfigError) as exc:
        load_target_set("/nonexistent/targets.yml")
    assert exc.value.kind == "not_found"


def test_unsupported_suffix(write_file):
    path = write_file("targets.json", "{}")
    with pytest.raises(ConfigError) as exc:
        load_target_set(path)
    assert exc.value.kind == "unsupported_format"


def test_make_settings_defaults():
    assert make_settings(None) == WorkflowSettings()
    assert make_settings({}).pkg_checkout == "edgedb-pkg"


def test_make_settings_accepts_path_like_values():
    settings = make_settings({"pkg_repo": "me/edgedb-pkg", "pkg_ref": "release/1.0", "upload_secret": "UPLOAD_KEY_2"})
    assert settings.pkg_checkout == "edgedb-pkg"
    assert settings.pkg_ref == "release/1.0"


def test_make_target_accepts_family_enum():
    tgt = make_target({"name": "a", "platform": "b", "family": Family.GENERIC})
    assert tgt.generic


# ============================================================================
# PYTHON FILES / DSL
# ============================================================================

def test_dsl_builds_same_targets_as_yaml(targets_yml):
    from_yaml, _ = load_target_set(targets_yml)
    from_dsl = target_set(
        linux=[
            target("centos-7", "centos", 7),
            target("linux-x86_64", "linux", "x86_64", generic=True),
        ],
        macos=[target("macos-x86_64", "macos", "x86_64", generic=True)],
    )
    assert from_dsl == from_yaml


def test_dsl_settings_keywords_return_pair():
    ts, settings = target_set(linux=[target("a", "debian", "buster")], max_parallel=8)
    assert isinstance(ts, TargetSet)
    assert settings.max_parallel == 8


def test_dsl_validates():
    with pytest.raises(ConfigError):
        target("bad name", "debian")
    with pytest.raises(ConfigError) as exc:
        target_set()
    assert exc.value.kind == "no_targets"


def test_load_python_targets_function(write_file):
    path = write_file(
        "nightly_targets.py",
        """
        from nightlyci.dsl import target, target_set

        def targets():
            return target_set(linux=[target("centos-7", "centos", 7)])
        """,
    )
    ts, settings = load_target_set(path)
    assert [t.name for t in ts.linux] == ["centos-7"]
    assert settings == WorkflowSettings()


def test_load_python_targets_constant_with_settings(write_file):
    path = write_file(
        "consts_targets.py",
        """
        from nightlyci.dsl import target, target_set

        TARGETS = target_set(
            macos=[target("macos-x86_64", "macos", "x86_64", generic=True)],
            max_parallel=1,
        )
        """,
    )
    ts, settings = load_target_set(path)
    assert ts.macos[0].generic
    assert settings.max_parallel == 1


def test_load_python_without_targets(write_file):
    path = write_file("empty_targets.py", "JOBS = []\n")
    with pytest.raises(ConfigError) as exc:
        load_target_set(path)
    assert exc.value.kind == "invalid_workflow_file"


def test_target_is_immutable(centos7):
    with pytest.raises(Exception):
        centos7.name = "centos-8"
    assert isinstance(centos7, Target)


def test_bundled_target_files_agree():
    from pathlib import Path

    root = Path(__file__).resolve().parent.parent
    from_yaml = load_target_set(root / ".github" / "workflows.src" / "targets.yml")
    from_python = load_target_set(root / "nightly_targets.py")

    assert from_yaml == from_python
    assert [t.name for t in from_yaml[0].linux][-1] == "linux-x86_64"


def test_bundled_workflow_is_up_to_date():
    from pathlib import Path

    from nightlyci.render import is_up_to_date, render_workflow

    root = Path(__file__).resolve().parent.parent
    rendered = render_workflow(*load_target_set(root / ".github" / "workflows.src" / "targets.yml"))

    assert is_up_to_date(rendered, root / ".github" / "workflows" / "nightly.yml")
