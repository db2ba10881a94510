import logging
import math

from sim.components import Kind, capacitor_voltage, kind_of, load_resistance
from sim.sources import aggregate_sources, split_terminals
from sim.topology import canonical_key, find_clusters, layer_depths

logger = logging.getLogger(__name__)

MIN_RESISTANCE = 1e-6
MAX_CURRENT = 50.0
SHUNT_RESISTANCE = 1e9
LED_FORWARD_VOLTAGE = 0.5
LED_RESISTANCE = 100.0
LED_CUTOFF_CURRENT = 1e-9
CAPACITOR_LEAD_RESISTANCE = 10.0
CAPACITOR_SOURCE_VOLTAGE = 0.01
OPEN_LOOP_RESISTANCE = 1e7

GROUND = "ground"
DRIVE = "drive"
SOURCE = "source"


def element_for(component, conducting=True):
    """Return the (resistance, emf) pair a component presents for one tick.

    The emf opposes current flowing from the upstream to the downstream
    terminal. None means the element is open.
    """
    kind = kind_of(component)
    if kind in (Kind.RESISTOR, Kind.LIGHTBULB):
        return (load_resistance(component), 0.0)
    if kind is Kind.CAPACITOR:
        return (CAPACITOR_LEAD_RESISTANCE, capacitor_voltage(component))
    if kind is Kind.LED and conducting:
        return (LED_RESISTANCE, LED_FORWARD_VOLTAGE)
    return None


def idle_flow():
    return {
        "current": 0.0,
        "voltage": 0.0,
        "loopResistance": 0.0,
        "overCurrent": False,
        "active": False,
        "charging": 0.0,
    }


def build_cluster_nodes(members, entries, exits, adjacency, with_source=False):
    """Merge component terminals into electrical nodes.

    Every member has an upstream terminal (0) and a downstream one (1), facing
    towards and away from the entry side. Entry members start at the drive
    node and exit members return to ground, so paths that split and meet
    again share a node.
    """
    depths = layer_depths(entries, members, adjacency)
    placed = [m for m in members if m in depths]
    placed_set = set(placed)
    terminals = [GROUND, DRIVE] + [(m, side) for m in placed for side in (0, 1)]
    parent = {t: t for t in terminals}

    def find(x):
        if parent[x] != x:
            parent[x] = find(parent[x])
        return parent[x]

    def union(a, b):
        ra = find(a)
        rb = find(b)
        if ra != rb:
            parent[rb] = ra

    for member in placed:
        if member in entries:
            union(DRIVE, (member, 0))
        if member in exits:
            union(GROUND, (member, 1))
        for peer in sorted(adjacency[member], key=canonical_key):
            if peer not in placed_set:
                continue
            if depths[member] < depths[peer]:
                union((member, 1), (peer, 0))
            elif depths[member] == depths[peer] and canonical_key(member) < canonical_key(peer):
                union((member, 1), (peer, 1))

    node_map = {find(GROUND): 0, find(DRIVE): 1}
    node_count = 3 if with_source else 2
    terminal_nodes = {}
    for key in terminals:
        root = find(key)
        if root not in node_map:
            node_map[root] = node_count
            node_count += 1
        terminal_nodes[key] = node_map[root]
    if with_source:
        terminal_nodes[SOURCE] = 2
    return {"terminal_nodes": terminal_nodes, "node_count": node_count, "members": placed}


def _find_floating_nodes(node_count, branches, sources):
    adjacency = [set() for _ in range(node_count)]
    for branch in branches + sources:
        adjacency[branch["n1"]].add(branch["n2"])
        adjacency[branch["n2"]].add(branch["n1"])
    reachable = set()
    stack = [0]
    while stack:
        node = stack.pop()
        if node in reachable:
            continue
        reachable.add(node)
        stack.extend(adjacency[node])
    return set(range(node_count)) - reachable


def gaussian_solve(matrix, vector):
    n = len(matrix)
    augmented = [row[:] + [vector[i]] for i, row in enumerate(matrix)]

    for i in range(n):
        max_row = max(range(i, n), key=lambda r: abs(augmented[r][i]))
        if abs(augmented[max_row][i]) < 1e-12:
            return None
        augmented[i], augmented[max_row] = augmented[max_row], augmented[i]

        pivot = augmented[i][i]
        for j in range(i, n + 1):
            augmented[i][j] /= pivot

        for k in range(n):
            if k == i:
                continue
            factor = augmented[k][i]
            if factor == 0:
                continue
            for j in range(i, n + 1):
                augmented[k][j] -= factor * augmented[i][j]

    return [row[n] for row in augmented]


def solve_mna(node_count, branches, sources):
    """Nodal solve with node 0 as ground.

    Branches are resistors with a series emf, stamped as their Norton
    equivalent. Sources are ideal voltage sources from n1 to n2.
    """
    floating = _find_floating_nodes(node_count, branches, sources)
    connected = [b for b in branches if b["n1"] not in floating and b["n2"] not in floating]
    n = node_count - 1
    size = n + len(sources)
    matrix = [[0.0 for _ in range(size)] for _ in range(size)]
    vector = [0.0 for _ in range(size)]

    def stamp(n1, n2, g, emf):
        i = n1 - 1
        j = n2 - 1
        if i >= 0:
            matrix[i][i] += g
            vector[i] += g * emf
        if j >= 0:
            matrix[j][j] += g
            vector[j] -= g * emf
        if i >= 0 and j >= 0:
            matrix[i][j] -= g
            matrix[j][i] -= g

    for branch in connected:
        resistance = min(max(branch["resistance"], MIN_RESISTANCE), SHUNT_RESISTANCE)
        stamp(branch["n1"], branch["n2"], 1 / resistance, branch["emf"])
    for node in sorted(floating):
        stamp(node, 0, 1 / SHUNT_RESISTANCE, 0.0)

    for idx, src in enumerate(sources):
        row = n + idx
        i = src["n1"] - 1
        j = src["n2"] - 1
        if i >= 0:
            matrix[i][row] += 1
            matrix[row][i] += 1
        if j >= 0:
            matrix[j][row] -= 1
            matrix[row][j] -= 1
        vector[row] = src["value"]

    solution = gaussian_solve(matrix, vector)
    if solution is None:
        logger.debug("Singular cluster matrix, treating it as open")
        solution = [0.0] * size
        floating = set(range(node_count))
        connected = []
    voltages = [0.0] + solution[:n]
    currents = {branch["id"]: 0.0 for branch in branches}
    for branch in connected:
        drop = voltages[branch["n1"]] - voltages[branch["n2"]]
        resistance = min(max(branch["resistance"], MIN_RESISTANCE), SHUNT_RESISTANCE)
        currents[branch["id"]] = (drop - branch["emf"]) / resistance
    # The source unknown is the current entering its n1 terminal from the circuit.
    supplied = {src["id"]: -solution[n + idx] for idx, src in enumerate(sources)}
    return {"voltages": voltages, "currents": currents, "supplied": supplied, "floating": floating}


def _limit(current):
    if abs(current) > MAX_CURRENT:
        return math.copysign(MAX_CURRENT, current), True
    return current, False


def _branches(nodes, lookup, conducting, source_id):
    terminal_nodes = nodes["terminal_nodes"]
    branches = []
    for member in nodes["members"]:
        element = element_for(lookup[member], member in conducting)
        if element is None:
            continue
        branches.append(
            {
                "id": member,
                "n1": terminal_nodes[(member, 0)],
                "n2": terminal_nodes[(member, 1)],
                "resistance": element[0],
                "emf": element[1],
            }
        )
    if source_id is not None:
        branches.append(
            {
                "id": source_id,
                "n1": terminal_nodes[SOURCE],
                "n2": terminal_nodes[DRIVE],
                "resistance": CAPACITOR_LEAD_RESISTANCE,
                "emf": 0.0,
            }
        )
    return branches


def _loop_resistance(nodes, branches, source_node, target_id, source_id):
    # Superposition: a unit emf at the target with every other source at zero.
    unit_branches = []
    for branch in branches:
        unit = dict(branch)
        unit["emf"] = 1.0 if branch["id"] == target_id and target_id != source_id else 0.0
        unit_branches.append(unit)
    unit_value = 1.0 if target_id == source_id else 0.0
    sources = [{"id": SOURCE, "n1": source_node, "n2": 0, "value": unit_value}]
    current = solve_mna(nodes["node_count"], unit_branches, sources)["currents"][target_id]
    if abs(current) * OPEN_LOOP_RESISTANCE <= 1.0:
        return None
    return 1.0 / abs(current)


def solve_cluster(members, lookup, adjacency, entries, exits, drive_voltage, source_id=None):
    """Solve one cluster between its entry side and ground.

    With source_id set the cluster runs in discharge mode: that capacitor is
    the source, behind its lead resistance.
    Returns the per-member flows and the current the source delivers.
    """
    members = sorted(members, key=canonical_key)
    nodes = build_cluster_nodes(members, set(entries), set(exits), adjacency, with_source=source_id is not None)
    source_node = nodes["terminal_nodes"][SOURCE if source_id is not None else DRIVE]
    sources = [{"id": SOURCE, "n1": source_node, "n2": 0, "value": drive_voltage}]
    leds = [m for m in nodes["members"] if kind_of(lookup[m]) is Kind.LED]
    conducting = set(leds)

    for _ in range(len(leds) + 1):
        branches = _branches(nodes, lookup, conducting, source_id)
        result = solve_mna(nodes["node_count"], branches, sources)
        blocked = [
            led for led in leds if led in conducting and result["currents"][led] <= LED_CUTOFF_CURRENT
        ]
        if not blocked:
            break
        conducting.difference_update(blocked)

    flows = {member: idle_flow() for member in members}
    voltages = result["voltages"]
    for branch in branches:
        current, clamped = _limit(result["currents"][branch["id"]])
        if clamped:
            logger.debug("Current through %r clamped to %s A", branch["id"], MAX_CURRENT)
        floating = branch["n1"] in result["floating"] or branch["n2"] in result["floating"]
        flow = {
            "current": current,
            "voltage": voltages[branch["n1"]] - voltages[branch["n2"]],
            "loopResistance": 0.0,
            "overCurrent": clamped,
            "active": not floating,
            "charging": current,
        }
        if branch["id"] == source_id or kind_of(lookup[branch["id"]]) is Kind.CAPACITOR:
            loop = _loop_resistance(nodes, branches, source_node, branch["id"], source_id)
            flow["active"] = loop is not None
            flow["loopResistance"] = loop or 0.0
        if branch["id"] == source_id:
            flow["charging"] = -current
        flows[branch["id"]] = flow

    supplied, _ = _limit(result["supplied"][SOURCE])
    return flows, supplied


def discharge_source(cluster, lookup):
    best = None
    best_voltage = CAPACITOR_SOURCE_VOLTAGE
    for member in sorted(cluster, key=canonical_key):
        comp = lookup[member]
        if kind_of(comp) is not Kind.CAPACITOR:
            continue
        voltage = capacitor_voltage(comp)
        if voltage > best_voltage:
            best = member
            best_voltage = voltage
    return best


def solve_island(island, lookup, adjacency):
    members = island["members"]
    sources = aggregate_sources(members, lookup, adjacency)
    drive_voltage = sources["voltage"]
    entries = set()
    exits = set()
    for chain in sources["chains"]:
        if chain["attached"]:
            entries.update(chain["entries"])
            exits.update(chain["exits"])

    clusters = sorted(
        find_clusters(members, lookup, adjacency),
        key=lambda cluster: min(canonical_key(m) for m in cluster),
    )
    flows = {}
    supplied = 0.0
    for cluster in clusters:
        cluster_entries = [m for m in cluster if m in entries]
        cluster_exits = [m for m in cluster if m in exits]
        if drive_voltage > 0 and cluster_entries and cluster_exits:
            cluster_flows, current = solve_cluster(
                cluster, lookup, adjacency, cluster_entries, cluster_exits, drive_voltage
            )
            supplied += current
        else:
            source = discharge_source(cluster, lookup)
            if source is None:
                cluster_flows = {member: idle_flow() for member in cluster}
            else:
                logger.debug("Cluster around capacitor %r is discharging", source)
                loads = [m for m in cluster if m != source]
                load_set = set(loads)
                neighbors = [peer for peer in adjacency[source] if peer in load_set]
                side_entries, side_exits = split_terminals(neighbors, lookup, adjacency, exclude={source})
                cluster_flows, _ = solve_cluster(
                    loads,
                    lookup,
                    adjacency,
                    side_entries,
                    side_exits,
                    capacitor_voltage(lookup[source]),
                    source_id=source,
                )
        flows.update(cluster_flows)

    supplied = max(supplied, 0.0)
    for chain in sources["chains"]:
        chain["current"] = chain["share"] * supplied
    return {
        "sourceVoltage": drive_voltage,
        "suppliedCurrent": supplied,
        "chains": sources["chains"],
        "flows": flows,
    }
