import logging
import math

from sim.components import Kind, kind_of
from sim.integrator import drain_battery, integrate_capacitor
from sim.network import solve_island
from sim.response import apply_flow, clear_outputs, reset_component
from sim.state import SimulationState
from sim.topology import describe_topology, resolve_topology

logger = logging.getLogger(__name__)

DEFAULT_DT = 0.1
FRAME_DT = 0.01


def _sanitize_dt(dt):
    if isinstance(dt, bool) or not isinstance(dt, (int, float)):
        return 0.0
    dt = float(dt)
    if not math.isfinite(dt) or dt < 0:
        logger.debug("Ignoring unusable time step %r", dt)
        return 0.0
    return dt


def _copy_records(components):
    if not isinstance(components, (list, tuple)):
        return []
    return [dict(comp) if isinstance(comp, dict) else comp for comp in components]


def solve_tick(components, wires, dt=DEFAULT_DT):
    """Advance a circuit by one time step.

    Returns fresh copies of the component records together with a per-island
    summary. The input lists are left untouched.
    """
    dt = _sanitize_dt(dt)
    records = _copy_records(components)
    if not isinstance(wires, (list, tuple)):
        wires = []
    topology = resolve_topology(records, wires)
    lookup = topology["lookup"]
    adjacency = topology["adjacency"]

    for comp in lookup.values():
        clear_outputs(comp)

    flows = {}
    battery_currents = {}
    islands = []
    for island in topology["islands"]:
        result = solve_island(island, lookup, adjacency)
        flows.update(result["flows"])
        for chain in result["chains"]:
            for battery_id in chain["ids"]:
                battery_currents[battery_id] = chain["current"]
        islands.append(
            {
                "members": island["members"],
                "sourceVoltage": result["sourceVoltage"],
                "suppliedCurrent": result["suppliedCurrent"],
                "chains": len(result["chains"]),
            }
        )

    for comp_id, comp in lookup.items():
        kind = kind_of(comp)
        if kind is Kind.BATTERY:
            drain_battery(comp, battery_currents.get(comp_id, 0.0), dt)
            continue
        flow = flows.get(comp_id)
        if kind is Kind.CAPACITOR:
            integrate_capacitor(comp, flow, dt)
        if flow is not None:
            apply_flow(comp, flow)

    over_current = [comp_id for comp_id, flow in flows.items() if flow["overCurrent"]]
    if over_current:
        logger.info("Over-current on %d component(s)", len(over_current))
    return {
        "components": records,
        "debug_info": {
            "dt": dt,
            "components": len(lookup),
            "islands": islands,
            "overCurrent": over_current,
        },
    }


def step(components, wires, dt=DEFAULT_DT):
    return solve_tick(components, wires, dt)["components"]


def reset_circuit(components):
    if not isinstance(components, (list, tuple)):
        return []
    return [reset_component(comp) if isinstance(comp, dict) else comp for comp in components]


class CircuitSimulator:
    def __init__(self, components=None, wires=None):
        self.components = list(components or [])
        self.wires = list(wires or [])
        self.state = SimulationState()

    def set_components(self, components):
        self.components = list(components or [])

    def set_wires(self, wires):
        self.wires = list(wires or [])

    def simulate(self, dt=DEFAULT_DT):
        self.components = step(self.components, self.wires, dt)
        return self.components

    def reset_circuit(self, components):
        return reset_circuit(components)

    def tick(self, dt=FRAME_DT):
        if not self.state.running:
            return None
        return self.simulate(dt)

    def topology(self):
        return describe_topology(resolve_topology(self.components, self.wires))
