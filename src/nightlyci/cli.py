# cli.py
from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional, Tuple

import click

from nightlyci.config import DEFAULT_OUTPUT, DEFAULT_TARGETS, DEFAULT_TEMPLATE, load_target_set
from nightlyci.dag import stages
from nightlyci.errors import ConfigError, NightlyCIError, RenderError
from nightlyci.model import TargetSet, WorkflowSettings
from nightlyci.render import RenderedWorkflow, is_up_to_date, render_workflow, write_workflow
from nightlyci.ui.console import Console, get_console, set_console


def _error_details(exc: NightlyCIError) -> list[str]:
    return [f"{k}: {v}" for k, v in exc.details.items()]


def _load(targets: str) -> Tuple[TargetSet, WorkflowSettings]:
    """
    Load the targets file, exiting with a structured error on failure.

    Args:
        targets: Path to a .yml/.yaml/.py targets file

    Raises:
        SystemExit: If the file is missing or malformed
    """
    console = get_console()
    try:
        target_set, settings = load_target_set(targets)
    except ConfigError as e:
        console.print_error(
            "Invalid targets file",
            e.message,
            details=_error_details(e),
            suggestion=f"Fix {targets} or point at another file:\n  nightlyci generate --targets my_targets.yml",
        )
        console.print_debug(f"kind={e.kind}")
        sys.exit(1)
    except Exception as e:
        # raised from inside a .py targets file
        console.print_error("Failed to load targets", f"Could not load targets from {targets}")
        console.print_exception(e)
        sys.exit(1)

    console.print_debug(
        f"Loaded {len(target_set.linux)} linux and {len(target_set.macos)} macos target(s) from {targets}"
    )
    return target_set, settings


def _render(target_set: TargetSet, settings: WorkflowSettings, template: Optional[str]) -> RenderedWorkflow:
    console = get_console()
    try:
        return render_workflow(target_set, settings, template=template)
    except RenderError as e:
        console.print_error(
            "Could not render workflow",
            e.message,
            details=_error_details(e),
            suggestion="Nothing was written. Fix the template and run again.",
        )
        console.print_debug(f"kind={e.kind}")
        sys.exit(1)


targets_option = click.option(
    "--targets",
    default=DEFAULT_TARGETS,
    show_default=True,
    help="Targets file (.yml, .yaml or .py)",
)
template_option = click.option(
    "--template",
    default=DEFAULT_TEMPLATE,
    help="Job template (defaults to the bundled nightly template)",
)
output_option = click.option(
    "--output",
    default=DEFAULT_OUTPUT,
    show_default=True,
    help="Workflow file to write",
)


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
def cli(debug):
    """nightlyci: nightly package workflow generator."""
    set_console(Console(debug=debug))


@cli.command()
@targets_option
@output_option
@template_option
@click.option("--stdout", "to_stdout", is_flag=True, default=False, help="Print the workflow instead of writing it")
def generate(targets, output, template, to_stdout):
    """Render the workflow from the targets file."""
    console = get_console()
    target_set, settings = _load(targets)
    rendered = _render(target_set, settings, template)

    if to_stdout:
        click.echo(rendered.text, nl=False)
        return

    try:
        path = write_workflow(rendered, output)
    except OSError as e:
        console.print_error("Could not write workflow", str(e), suggestion=f"Check that {output} is writable.")
        sys.exit(1)

    console.print_generated(str(path), rendered.job_names, len(target_set))


@cli.command()
@targets_option
@output_option
@template_option
def check(targets, output, template):
    """Fail if the workflow file is out of date with the targets file."""
    console = get_console()
    target_set, settings = _load(targets)
    rendered = _render(target_set, settings, template)

    if not is_up_to_date(rendered, output):
        reason = "does not exist" if not Path(output).exists() else "differs from a fresh render"
        console.print_error(
            "Workflow is out of date",
            f"{output} {reason}.",
            suggestion=f"Regenerate it:\n  nightlyci generate --targets {targets} --output {output}",
        )
        sys.exit(1)

    console.print_info(f"{output} is up to date.")


@cli.command()
@targets_option
@template_option
def plan(targets, template):
    """Show the job stages and matrices of the rendered workflow."""
    console = get_console()
    target_set, settings = _load(targets)
    rendered = _render(target_set, settings, template)

    jobs = {j.name: j for j in rendered.jobs()}
    for idx, level in enumerate(stages(list(jobs.values())), start=1):
        console.print_stage(idx, level)
        for name in level:
            console.print_plan_job(name, jobs[name].matrix, jobs[name].needs)


@cli.command(name="targets")
@targets_option
def list_targets(targets):
    """List the configured targets per OS group."""
    console = get_console()
    target_set, _ = _load(targets)

    for group, group_targets in target_set.groups().items():
        if not group_targets:
            continue
        console.print_header(group)
        for tgt in group_targets:
            console.print_target(tgt.name, tgt.slug, tgt.generic)


if __name__ == "__main__":
    cli()
