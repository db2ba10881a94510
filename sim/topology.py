import logging
from collections import deque

from sim.components import Kind, kind_of, valid_id

logger = logging.getLogger(__name__)


def canonical_key(comp_id):
    # Sorting by this makes every solve independent of list order.
    return (type(comp_id).__name__, str(comp_id))


def index_components(components):
    lookup = {}
    for comp in components:
        if kind_of(comp) is None:
            logger.debug("Ignoring component of unknown kind: %r", comp)
            continue
        comp_id = comp.get("id")
        if not valid_id(comp_id) or comp_id in lookup:
            logger.debug("Ignoring component with unusable id %r", comp_id)
            continue
        lookup[comp_id] = comp
    return lookup


def build_adjacency(lookup, wires):
    adjacency = {comp_id: [] for comp_id in lookup}
    for wire in wires:
        if not isinstance(wire, dict):
            continue
        a = wire.get("from")
        b = wire.get("to")
        if not valid_id(a) or not valid_id(b) or a not in adjacency or b not in adjacency:
            logger.debug("Dropping dangling wire %r", wire.get("id"))
            continue
        if a == b or b in adjacency[a]:
            continue
        adjacency[a].append(b)
        adjacency[b].append(a)
    return adjacency


def find_islands(lookup, adjacency):
    parent = {comp_id: comp_id for comp_id in lookup}

    def find(x):
        root = x
        while parent[root] != root:
            root = parent[root]
        while parent[x] != root:
            parent[x], x = root, parent[x]
        return root

    def union(a, b):
        ra = find(a)
        rb = find(b)
        if ra != rb:
            parent[rb] = ra

    for comp_id, peers in adjacency.items():
        for peer in peers:
            union(comp_id, peer)

    groups = {}
    for comp_id in lookup:
        groups.setdefault(find(comp_id), []).append(comp_id)

    islands = []
    for members in groups.values():
        degrees = {member: len(adjacency[member]) for member in members}
        islands.append(
            {
                "members": members,
                "degrees": degrees,
                "terminals": [m for m in members if degrees[m] == 1],
                "links": [m for m in members if degrees[m] == 2],
                "junctions": [m for m in members if degrees[m] >= 3],
            }
        )
    return islands


def find_branches(island, adjacency):
    """Split an island into maximal runs of non-junction components."""
    junctions = set(island["junctions"])
    visited = set()
    branches = []
    for start in island["members"]:
        if start in junctions or start in visited:
            continue
        run = []
        queue = deque([start])
        visited.add(start)
        while queue:
            node = queue.popleft()
            run.append(node)
            for peer in adjacency[node]:
                if peer in junctions or peer in visited:
                    continue
                visited.add(peer)
                queue.append(peer)
        branches.append(run)
    return branches


def find_clusters(members, lookup, adjacency):
    loads = [m for m in members if kind_of(lookup[m]) is not Kind.BATTERY]
    load_set = set(loads)
    order = {comp_id: idx for idx, comp_id in enumerate(members)}
    visited = set()
    clusters = []
    for start in loads:
        if start in visited:
            continue
        cluster = []
        stack = [start]
        visited.add(start)
        while stack:
            node = stack.pop()
            cluster.append(node)
            for peer in reversed(adjacency[node]):
                if peer in load_set and peer not in visited:
                    visited.add(peer)
                    stack.append(peer)
        clusters.append(sorted(cluster, key=order.get))
    return clusters


def layer_depths(entries, members, adjacency):
    """Breadth-first distance of each member from the nearest entry member."""
    member_set = set(members)
    depths = {}
    queue = deque()
    for entry in sorted(entries, key=canonical_key):
        if entry in member_set and entry not in depths:
            depths[entry] = 0
            queue.append(entry)
    while queue:
        node = queue.popleft()
        for peer in adjacency[node]:
            if peer in member_set and peer not in depths:
                depths[peer] = depths[node] + 1
                queue.append(peer)
    return depths


def resolve_topology(components, wires):
    lookup = index_components(components or [])
    adjacency = build_adjacency(lookup, wires or [])
    return {"lookup": lookup, "adjacency": adjacency, "islands": find_islands(lookup, adjacency)}


def describe_topology(topology):
    adjacency = topology["adjacency"]
    summary = []
    for island in topology["islands"]:
        summary.append(
            {
                "members": island["members"],
                "terminals": island["terminals"],
                "junctions": island["junctions"],
                "branches": find_branches(island, adjacency),
            }
        )
    return summary
