from collections import deque

from sop_compiler.utils.exceptions import CompilationError


def sort(nodes: list[str], adjacency: dict[str, list[str]]) -> list[str]:
    """Kahn's algorithm over *nodes*, seeded in the given order.

    Edges touching names outside *nodes* are ignored. Raises CompilationError
    when the nodes cannot all be ordered, i.e. the graph has a cycle.
    """
    members = set(nodes)
    in_degree: dict[str, int] = {n: 0 for n in nodes}
    adj: dict[str, list[str]] = {n: [] for n in nodes}

    for source in nodes:
        for target in adjacency.get(source, []):
            if target in members:
                adj[source].append(target)
                in_degree[target] += 1

    queue = deque(n for n in nodes if in_degree[n] == 0)
    result: list[str] = []

    while queue:
        node = queue.popleft()
        result.append(node)
        for neighbor in adj[node]:
            in_degree[neighbor] -= 1
            if in_degree[neighbor] == 0:
                queue.append(neighbor)

    if len(result) != len(nodes):
        stuck = sorted(n for n, deg in in_degree.items() if deg > 0)
        raise CompilationError(f"Cycle detected in workflow between steps: {', '.join(stuck)}")

    return result
