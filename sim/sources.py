from sim.components import BATTERY_VOLTAGE, Kind, is_live, kind_of, read_number
from sim.topology import canonical_key


def battery_emf(battery):
    if not is_live(battery):
        return 0.0
    return max(read_number(battery, "voltage", BATTERY_VOLTAGE), 0.0)


def live_batteries(members, lookup):
    return [m for m in members if kind_of(lookup[m]) is Kind.BATTERY and is_live(lookup[m])]


def load_neighbors(comp_id, lookup, adjacency, exclude=()):
    return [
        peer
        for peer in adjacency[comp_id]
        if peer not in exclude and kind_of(lookup[peer]) is not Kind.BATTERY
    ]


def find_chains(members, lookup, adjacency):
    # Depleted batteries are open links, so they never join or bridge a chain.
    live = sorted(live_batteries(members, lookup), key=canonical_key)
    live_set = set(live)

    def battery_peers(battery_id):
        return sorted((peer for peer in adjacency[battery_id] if peer in live_set), key=canonical_key)

    starts = [b for b in live if len(battery_peers(b)) <= 1] + live
    visited = set()
    chains = []
    for start in starts:
        if start in visited:
            continue
        chain = [start]
        visited.add(start)
        current = start
        while True:
            following = next((p for p in battery_peers(current) if p not in visited), None)
            if following is None:
                break
            chain.append(following)
            visited.add(following)
            current = following
        chains.append(chain)
    return chains


def split_terminals(neighbors, lookup, adjacency, exclude=()):
    """Guess which neighbours of a single two-terminal source sit on each side.

    A neighbour wired to nothing else is read as spanning both terminals. Of
    the rest, the best connected one is the entry and the others are returns;
    a single one spans both terminals as well.
    """
    entries = []
    exits = []
    ranked = []
    for peer in neighbors:
        degree = len(load_neighbors(peer, lookup, adjacency, exclude))
        if degree == 0:
            entries.append(peer)
            exits.append(peer)
        else:
            ranked.append((-degree, canonical_key(peer), peer))
    ranked.sort(key=lambda item: item[:2])
    if len(ranked) == 1:
        entries.append(ranked[0][2])
        exits.append(ranked[0][2])
    elif ranked:
        entries.append(ranked[0][2])
        exits.extend(item[2] for item in ranked[1:])
    return entries, exits


def chain_sides(chain, lookup, adjacency):
    if len(chain) == 1:
        return split_terminals(load_neighbors(chain[0], lookup, adjacency), lookup, adjacency)
    entries = load_neighbors(chain[0], lookup, adjacency)
    exits = load_neighbors(chain[-1], lookup, adjacency)
    for middle in chain[1:-1]:
        exits.extend(load_neighbors(middle, lookup, adjacency))
    return entries, exits


def aggregate_sources(members, lookup, adjacency):
    chains = []
    for ids in find_chains(members, lookup, adjacency):
        entries, exits = chain_sides(ids, lookup, adjacency)
        emf = sum(battery_emf(lookup[battery_id]) for battery_id in ids)
        chains.append(
            {
                "ids": ids,
                "emf": emf,
                "attached": bool(entries or exits),
                "entries": entries,
                "exits": exits,
                "share": 0.0,
                "current": 0.0,
            }
        )

    driving = [chain for chain in chains if chain["attached"]]
    total_emf = sum(chain["emf"] for chain in driving)
    for chain in driving:
        if total_emf > 0:
            chain["share"] = chain["emf"] / total_emf
    voltage = max((chain["emf"] for chain in driving), default=0.0)
    return {"voltage": voltage, "chains": chains}
