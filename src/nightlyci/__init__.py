from .config import load_target_set
from .dsl import target, target_set
from .errors import ConfigError, RenderError
from .model import Family, Target, TargetSet, WorkflowSettings
from .render import RenderedWorkflow, render_workflow, write_workflow

__all__ = [
    "load_target_set", "target", "target_set", "ConfigError", "RenderError",
    "Family", "Target", "TargetSet", "WorkflowSettings",
    "RenderedWorkflow", "render_workflow", "write_workflow",
]
