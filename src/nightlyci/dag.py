# dag.py
from __future__ import annotations

from collections import deque
from typing import Dict, List, Set, Tuple

from .errors import RenderError
from .model import Job


def build_dag(jobs: List[Job]) -> Tuple[Dict[str, Set[str]], Dict[str, int]]:
    """
    Build a DAG from rendered Job objects.

    Requires:
      - job.name: str (unique)
      - job.needs: list[str] (names of jobs that must run BEFORE this job)
    """
    names = [j.name for j in jobs]
    if len(set(names)) != len(names):
        dupes = sorted({n for n in names if names.count(n) > 1})
        raise RenderError(
            kind="duplicate_job",
            message=f"Duplicate job names found: {dupes}",
        )

    name_set = set(names)
    adj: Dict[str, Set[str]] = {n: set() for n in name_set}
    indeg: Dict[str, int] = {n: 0 for n in name_set}

    for job in jobs:
        for dep in job.needs:
            if dep not in name_set:
                raise RenderError(
                    kind="unknown_dependency",
                    message=f"Job '{job.name}' needs missing job '{dep}'",
                    details={"known_jobs": sorted(name_set)},
                )
            # Edge dep -> job.name (dep must run before job)
            if job.name not in adj[dep]:
                adj[dep].add(job.name)
                indeg[job.name] += 1

    return adj, indeg


def topo_levels(adj: Dict[str, Set[str]], indeg: Dict[str, int]) -> List[List[str]]:
    """
    Convert DAG into topological "levels" (stages).
    Each stage can run in parallel on the CI runner.
    """
    indeg = dict(indeg)  # copy (we mutate it)
    q = deque(sorted([n for n, d in indeg.items() if d == 0]))

    levels: List[List[str]] = []
    processed = 0

    while q:
        level_size = len(q)
        level: List[str] = []

        for _ in range(level_size):
            node = q.popleft()
            level.append(node)
            processed += 1

            for child in sorted(adj.get(node, set())):
                indeg[child] -= 1
                if indeg[child] == 0:
                    q.append(child)

        levels.append(level)

    if processed != len(indeg):
        remaining = sorted([n for n, d in indeg.items() if d > 0])
        raise RenderError(
            kind="cycle",
            message=f"job graph has a cycle. Stuck jobs: {remaining}",
        )

    return levels


def stages(jobs: List[Job]) -> List[List[str]]:
    """Dependency stages of `jobs`, in execution order."""
    return topo_levels(*build_dag(jobs))
