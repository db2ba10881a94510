import logging
import math

from flask import Blueprint, current_app, jsonify, request

from sim.components import Kind, create_component
from sim.core import reset_circuit, solve_tick
from sim.topology import describe_topology, resolve_topology
from sim.visual import visual_state

logger = logging.getLogger(__name__)

blueprint = Blueprint("routes", __name__)


def _payload():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return {}
    return payload


def _read_circuit(payload, need_wires=True):
    components = payload.get("components")
    if not isinstance(components, list):
        return None, None, "Komponentlistan saknas."
    if not need_wires:
        return components, None, None
    wires = payload.get("wires", [])
    if not isinstance(wires, list):
        return None, None, "Kopplingslistan är ogiltig."
    return components, wires, None


def _read_dt(payload):
    dt = payload.get("dt", current_app.config["SIM_DEFAULT_DT"])
    if isinstance(dt, bool) or not isinstance(dt, (int, float)):
        return None
    if not math.isfinite(dt) or dt < 0:
        return None
    return float(dt)


def _read_steps(payload):
    steps = payload.get("steps", 1)
    if isinstance(steps, bool) or not isinstance(steps, int):
        return None
    if steps < 1 or steps > current_app.config["SIM_MAX_STEPS"]:
        return None
    return steps


@blueprint.post("/api/simulate")
def api_simulate():
    payload = _payload()
    components, wires, error = _read_circuit(payload)
    if error:
        return jsonify({"error": error}), 400
    dt = _read_dt(payload)
    if dt is None:
        return jsonify({"error": "Ogiltigt tidssteg."}), 400
    steps = _read_steps(payload)
    if steps is None:
        return jsonify({"error": "Ogiltigt antal steg."}), 400

    result = {"components": components, "debug_info": {}}
    for _ in range(steps):
        result = solve_tick(result["components"], wires, dt)
    logger.debug("Simulated %d step(s) of %s s for %d component(s)", steps, dt, len(components))
    debug_info = dict(result["debug_info"])
    debug_info["steps"] = steps
    return jsonify({"components": result["components"], "debugInfo": debug_info})


@blueprint.post("/api/reset")
def api_reset():
    payload = _payload()
    components, _, error = _read_circuit(payload, need_wires=False)
    if error:
        return jsonify({"error": error}), 400
    return jsonify({"components": reset_circuit(components)})


@blueprint.post("/api/topology")
def api_topology():
    payload = _payload()
    components, wires, error = _read_circuit(payload)
    if error:
        return jsonify({"error": error}), 400
    return jsonify({"islands": describe_topology(resolve_topology(components, wires))})


@blueprint.post("/api/visual-state")
def api_visual_state():
    payload = _payload()
    components, _, error = _read_circuit(payload, need_wires=False)
    if error:
        return jsonify({"error": error}), 400
    states = []
    for comp in components:
        state = visual_state(comp)
        if state is None:
            continue
        states.append({"id": comp.get("id"), "type": comp.get("type"), "state": state})
    return jsonify({"visualState": states})


@blueprint.get("/api/components/<kind>")
def api_create_component(kind):
    if kind not in {k.value for k in Kind}:
        return jsonify({"error": "Okänd komponenttyp."}), 404
    component_id = request.args.get("id") or f"{kind}-1"
    x = request.args.get("x", 0, type=float)
    y = request.args.get("y", 0, type=float)
    return jsonify({"component": create_component(kind, component_id, x, y)})


def register_routes(app):
    app.register_blueprint(blueprint)
