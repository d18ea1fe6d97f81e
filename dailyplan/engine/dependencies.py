"""Dependency resolution for dailyplan.

Builds the precedence graph for one scheduling run, finds cycles, and
produces a deterministic processing order with Kahn's algorithm. Cycles are
tolerated: tasks that can't be ordered are appended by priority, so every
input task comes back exactly once.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

from dailyplan.models.task import Task

logger = logging.getLogger(__name__)


CIRCULAR_DEPENDENCY = "circular_dependency"
MISSING_DEPENDENCY = "missing_dependency"
BLOCKED_BY_CYCLE = "blocked_by_cycle"


class DependencyNode(BaseModel):
    """Graph node: what a task waits on and what waits on it."""

    task_id: str
    dependencies: List[str] = Field(default_factory=list)
    dependents: List[str] = Field(default_factory=list)


class DependencyIssue(BaseModel):
    """Problem found while validating a dependency chain."""

    type: str
    task_id: Optional[str] = None
    dependency_id: Optional[str] = None
    cycle: List[str] = Field(default_factory=list)
    message: str = ""


class ChainValidation(BaseModel):
    """Result of validate_dependency_chain."""

    is_valid: bool
    errors: List[DependencyIssue] = Field(default_factory=list)
    warnings: List[DependencyIssue] = Field(default_factory=list)


class DependencyStatistics(BaseModel):
    """Summary numbers for a task set's dependency structure."""

    total_tasks: int = 0
    tasks_with_dependencies: int = 0
    independent_tasks: int = 0
    max_dependency_depth: int = 0
    circular_dependency_count: int = 0


DependencyGraph = Dict[str, DependencyNode]


def _priority_key(task: Task) -> int:
    return -task.priority


class DependencyResolver:
    """Orders tasks so predecessors come first, highest priority first among equals."""

    def build_dependency_graph(self, tasks: Sequence[Task]) -> DependencyGraph:
        """Build a fresh graph for `tasks`.

        Edges are only created to predecessors present in the set; unknown
        predecessor IDs are logged and left for conflict detection to report.
        """
        graph: DependencyGraph = {}
        for task in tasks:
            if task.id not in graph:
                graph[task.id] = DependencyNode(task_id=task.id)

        for task in tasks:
            node = graph[task.id]
            for dependency_id in task.predecessor_ids:
                if dependency_id not in graph:
                    logger.warning(f"Dependency {dependency_id} not found for task {task.id}")
                    continue
                if dependency_id in node.dependencies:
                    continue
                node.dependencies.append(dependency_id)
                graph[dependency_id].dependents.append(task.id)

        return graph

    def detect_circular_dependencies(self, graph: DependencyGraph) -> List[List[str]]:
        """Find cycles with an iterative depth-first search.

        Each cycle is a closed path, e.g. ["a", "b", "a"]; a self-dependency
        is ["a", "a"].
        """
        in_progress, done = 1, 2
        state: Dict[str, int] = {}
        cycles: List[List[str]] = []

        for root in graph:
            if state.get(root):
                continue
            state[root] = in_progress
            path = [root]
            stack = [(root, iter(graph[root].dependencies))]
            while stack:
                node_id, pending = stack[-1]
                next_id = next(pending, None)
                if next_id is None:
                    stack.pop()
                    path.pop()
                    state[node_id] = done
                    continue
                if state.get(next_id) == in_progress:
                    cycles.append(path[path.index(next_id):] + [next_id])
                elif not state.get(next_id):
                    state[next_id] = in_progress
                    path.append(next_id)
                    stack.append((next_id, iter(graph[next_id].dependencies)))

        return cycles

    def has_circular_dependencies(self, graph: DependencyGraph) -> bool:
        return bool(self.detect_circular_dependencies(graph))

    def topological_sort(
        self,
        tasks: Sequence[Task],
        graph: Optional[DependencyGraph] = None,
    ) -> List[Task]:
        """Order tasks so every task follows its predecessors.

        Among ready tasks the highest priority goes first; equal priorities
        keep the order in which they became ready (input order for tasks
        ready at the start, release order for dependents). Tasks left over
        because of a cycle are appended sorted by descending priority.
        """
        if graph is None:
            graph = self.build_dependency_graph(tasks)

        ordered, remaining = self._kahn_order(tasks, graph)
        if remaining:
            logger.warning(
                f"Circular dependencies left {len(remaining)} tasks unordered; "
                f"falling back to priority order for {[t.id for t in remaining]}"
            )
            ordered.extend(sorted(remaining, key=_priority_key))
        return ordered

    def resolve_dependencies(self, tasks: Sequence[Task]) -> List[Task]:
        """Alias of topological_sort used by the scheduling engine."""
        return self.topological_sort(tasks)

    def validate_dependency_chain(self, tasks: Sequence[Task]) -> ChainValidation:
        """Report cycles and unknown predecessors for a task set."""
        graph = self.build_dependency_graph(tasks)
        errors: List[DependencyIssue] = []
        warnings: List[DependencyIssue] = []

        for task in tasks:
            for dependency_id in task.predecessor_ids:
                if dependency_id not in graph:
                    errors.append(
                        DependencyIssue(
                            type=MISSING_DEPENDENCY,
                            task_id=task.id,
                            dependency_id=dependency_id,
                            message=f"Task {task.id} depends on unknown task {dependency_id}",
                        )
                    )

        cycles = self.detect_circular_dependencies(graph)
        for cycle in cycles:
            errors.append(
                DependencyIssue(
                    type=CIRCULAR_DEPENDENCY,
                    task_id=cycle[0],
                    cycle=cycle,
                    message="Circular dependency: " + " -> ".join(cycle),
                )
            )

        if cycles:
            in_cycle = {task_id for cycle in cycles for task_id in cycle}
            _, remaining = self._kahn_order(tasks, graph)
            for task in remaining:
                if task.id not in in_cycle:
                    warnings.append(
                        DependencyIssue(
                            type=BLOCKED_BY_CYCLE,
                            task_id=task.id,
                            message=f"Task {task.id} waits on a circular dependency",
                        )
                    )

        return ChainValidation(is_valid=not errors, errors=errors, warnings=warnings)

    def get_dependency_statistics(self, tasks: Sequence[Task]) -> DependencyStatistics:
        """Count dependent/independent tasks and the longest acyclic chain.

        Depth counts edges: a root is 0, its direct dependent 1, and so on.
        Tasks caught in cycles don't contribute to the depth.
        """
        graph = self.build_dependency_graph(tasks)
        ordered, _ = self._kahn_order(tasks, graph)

        depth: Dict[str, int] = {}
        for task in ordered:
            parents = [depth[p] + 1 for p in graph[task.id].dependencies if p in depth]
            depth[task.id] = max(parents, default=0)

        with_dependencies = sum(1 for task in tasks if task.predecessor_ids)
        return DependencyStatistics(
            total_tasks=len(tasks),
            tasks_with_dependencies=with_dependencies,
            independent_tasks=len(tasks) - with_dependencies,
            max_dependency_depth=max(depth.values(), default=0),
            circular_dependency_count=len(self.detect_circular_dependencies(graph)),
        )

    @staticmethod
    def _kahn_order(tasks: Sequence[Task], graph: DependencyGraph) -> Tuple[List[Task], List[Task]]:
        """Kahn's algorithm with a priority-sorted ready queue.

        Returns (ordered, remaining); `remaining` is non-empty only when a
        cycle blocks some tasks.
        """
        in_degree = {task_id: len(node.dependencies) for task_id, node in graph.items()}
        by_id: Dict[str, Task] = {}
        for task in tasks:
            by_id.setdefault(task.id, task)

        ready = [task for task in tasks if in_degree[task.id] == 0]
        ordered: List[Task] = []
        placed = set()

        while ready:
            ready.sort(key=_priority_key)
            task = ready.pop(0)
            ordered.append(task)
            placed.add(id(task))
            for dependent_id in graph[task.id].dependents:
                in_degree[dependent_id] -= 1
                if in_degree[dependent_id] == 0:
                    ready.append(by_id[dependent_id])

        remaining = [task for task in tasks if id(task) not in placed]
        return ordered, remaining
