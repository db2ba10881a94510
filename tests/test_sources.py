import pytest

from sim.components import create_component
from sim.sources import aggregate_sources, battery_emf, chain_sides, find_chains, split_terminals
from sim.topology import resolve_topology


def _wires(*pairs):
    return [{"id": f"w{i}", "from": a, "to": b} for i, (a, b) in enumerate(pairs)]


def _battery(comp_id, charge=1.0):
    battery = create_component("battery", comp_id)
    battery["charge"] = charge
    return battery


def _sources(components, wires):
    topology = resolve_topology(components, wires)
    members = topology["islands"][0]["members"]
    return aggregate_sources(members, topology["lookup"], topology["adjacency"])


def test_emf_is_zero_for_a_flat_battery():
    assert battery_emf(_battery("b")) == pytest.approx(0.9)
    assert battery_emf(_battery("b", charge=0)) == 0.0
    assert battery_emf({"type": "battery", "voltage": -3}) == 0.0


def test_series_chain_sums_emf():
    components = [_battery("b1"), _battery("b2"), _battery("b3"), create_component("capacitor", "c")]
    wires = _wires(("b1", "b2"), ("b2", "b3"), ("b3", "c"), ("c", "b1"))

    sources = _sources(components, wires)

    assert [chain["ids"] for chain in sources["chains"]] == [["b1", "b2", "b3"]]
    assert sources["voltage"] == pytest.approx(2.7)
    assert sources["chains"][0]["share"] == pytest.approx(1.0)


def test_flat_battery_splits_a_chain():
    components = [_battery("b1"), _battery("b2", charge=0), _battery("b3"), create_component("led", "l")]
    wires = _wires(("b1", "b2"), ("b2", "b3"), ("b3", "l"), ("l", "b1"))

    topology = resolve_topology(components, wires)
    members = topology["islands"][0]["members"]
    chains = find_chains(members, topology["lookup"], topology["adjacency"])

    assert chains == [["b1"], ["b3"]]
    assert _sources(components, wires)["voltage"] == pytest.approx(0.9)


def test_parallel_chains_share_current_by_emf():
    components = [_battery("b1"), _battery("b2"), _battery("b3"), create_component("lightbulb", "bulb")]
    wires = _wires(("b1", "b2"), ("b2", "bulb"), ("bulb", "b1"), ("b3", "bulb"))

    sources = _sources(components, wires)

    assert [chain["ids"] for chain in sources["chains"]] == [["b1", "b2"], ["b3"]]
    assert sources["voltage"] == pytest.approx(1.8)
    assert [chain["share"] for chain in sources["chains"]] == pytest.approx([2 / 3, 1 / 3])


def test_chain_without_loads_is_not_attached():
    sources = _sources([_battery("b1"), _battery("b2")], _wires(("b1", "b2")))

    assert sources["chains"][0]["attached"] is False
    assert sources["chains"][0]["share"] == 0.0
    assert sources["voltage"] == 0.0


def test_ring_of_batteries_still_forms_one_chain():
    components = [_battery("b1"), _battery("b2"), _battery("b3")]
    wires = _wires(("b1", "b2"), ("b2", "b3"), ("b3", "b1"))

    topology = resolve_topology(components, wires)
    chains = find_chains(topology["islands"][0]["members"], topology["lookup"], topology["adjacency"])

    assert chains == [["b1", "b2", "b3"]]


def test_chain_ends_give_entry_and_return_sides():
    components = [_battery("b1"), _battery("b2"), create_component("resistor", "r"), create_component("led", "l")]
    wires = _wires(("b2", "b1"), ("b2", "r"), ("r", "l"), ("l", "b1"))
    topology = resolve_topology(components, wires)

    entries, exits = chain_sides(["b1", "b2"], topology["lookup"], topology["adjacency"])

    assert entries == ["l"]
    assert exits == ["r"]


def test_single_battery_picks_best_connected_neighbour_as_entry():
    components = [
        _battery("b"),
        create_component("resistor", "r"),
        create_component("led", "l1"),
        create_component("led", "l2"),
        create_component("led", "lone"),
    ]
    wires = _wires(("b", "l2"), ("b", "l1"), ("b", "r"), ("b", "lone"), ("r", "l1"), ("r", "l2"))
    topology = resolve_topology(components, wires)
    lookup = topology["lookup"]
    adjacency = topology["adjacency"]

    entries, exits = split_terminals(adjacency["b"], lookup, adjacency)

    assert entries == ["lone", "r"]
    assert exits == ["lone", "l1", "l2"]
