# render.py
from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import jinja2
import yaml

from .dag import stages
from .errors import RenderError
from .model import Job, TargetSet, WorkflowSettings

TEMPLATES_DIR = Path(__file__).parent / "templates"
DEFAULT_TEMPLATE_NAME = "nightly.tpl.yml"


# ---------------------------------------------------------------------
# Rendered document
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class RenderedWorkflow:
    """Rendered workflow text plus its parsed document."""
    text: str
    document: Dict[str, Any]

    @property
    def job_names(self) -> List[str]:
        return list((self.document.get("jobs") or {}).keys())

    def job(self, name: str) -> Job:
        jobs = self.document.get("jobs") or {}
        if name not in jobs:
            raise KeyError(f"no job named {name!r}; jobs: {self.job_names}")
        return Job.from_dict(name, jobs[name])

    def jobs(self) -> List[Job]:
        return [self.job(n) for n in self.job_names]

    def matrix_targets(self, name: str) -> List[str]:
        return self.job(name).matrix


# ---------------------------------------------------------------------
# Jinja environment
# ---------------------------------------------------------------------

def _quote(value: Any) -> str:
    """Render a scalar as a double-quoted YAML string."""
    return json.dumps(str(value))


def make_environment(search_path: Path) -> jinja2.Environment:
    """
    Jinja environment for workflow templates.

    `<% %>` / `<< >>` / `<# #>` delimiters leave GitHub's `${{ ... }}`
    expressions untouched. Undefined names are errors, never empty strings.
    """
    env = jinja2.Environment(
        loader=jinja2.FileSystemLoader(str(search_path)),
        block_start_string="<%",
        block_end_string="%>",
        variable_start_string="<<",
        variable_end_string=">>",
        comment_start_string="<#",
        comment_end_string="#>",
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        undefined=jinja2.StrictUndefined,
        autoescape=False,
    )
    env.filters["quote"] = _quote
    return env


def _load_template(template: Optional[str | Path]) -> jinja2.Template:
    if template is None:
        search_path, name = TEMPLATES_DIR, DEFAULT_TEMPLATE_NAME
    else:
        tpl = Path(template).expanduser().resolve()
        search_path, name = tpl.parent, tpl.name

    try:
        return make_environment(search_path).get_template(name)
    except jinja2.TemplateNotFound as e:
        raise RenderError(
            kind="template_not_found",
            message=f"template not found: {name}",
            details={"search_path": str(search_path)},
        ) from e
    except jinja2.TemplateSyntaxError as e:
        raise RenderError(
            kind="template_syntax",
            message=e.message or "invalid template",
            details={"template": e.filename or name, "line": e.lineno},
        ) from e


# ---------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------

def render_workflow(
    target_set: TargetSet,
    settings: Optional[WorkflowSettings] = None,
    template: Optional[str | Path] = None,
) -> RenderedWorkflow:
    """
    Expand the job template for every target of `target_set`.

    All-or-nothing: the rendered text is parsed back and its job graph
    validated before anything is returned.

    Raises:
      RenderError: the template is missing or broken, references a field
                   that does not exist, or produces an invalid workflow.
    """
    settings = settings or WorkflowSettings()
    tpl = _load_template(template)

    try:
        text = tpl.render(targets=target_set, settings=settings)
    except jinja2.UndefinedError as e:
        raise RenderError(
            kind="undefined_field",
            message=e.message or "template references an undefined value",
            details={"template": tpl.name},
        ) from e

    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise RenderError(
            kind="invalid_output",
            message="rendered workflow is not valid YAML",
            details={"error": str(e).replace("\n", " ")},
        ) from e

    if not isinstance(document, dict) or not isinstance(document.get("jobs"), dict):
        raise RenderError(
            kind="invalid_output",
            message="rendered workflow has no jobs mapping",
            details={"template": tpl.name},
        )

    rendered = RenderedWorkflow(text=text, document=document)
    # publish-* must resolve to build-*, and nothing may loop
    stages(rendered.jobs())
    return rendered


# ---------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------

def write_workflow(rendered: RenderedWorkflow, path: str | Path) -> Path:
    """
    Atomically write the rendered workflow.

    The text goes to a temporary file next to `path` which is then renamed
    over it, so readers never observe a partial document.
    """
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp = tempfile.mkstemp(prefix=f".{out.name}.", suffix=".tmp", dir=str(out.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as fh:
            fh.write(rendered.text)
        os.replace(tmp, out)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise
    return out


def is_up_to_date(rendered: RenderedWorkflow, path: str | Path) -> bool:
    """True if `path` holds exactly the rendered text."""
    p = Path(path)
    if not p.is_file():
        return False
    return p.read_bytes() == rendered.text.encode("utf-8")
