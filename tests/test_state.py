from sim.state import SimulationState


def test_starts_stopped():
    assert SimulationState().running is False


def test_listeners_fire_on_transitions_only():
    state = SimulationState()
    seen = []
    state.on_change(seen.append)

    state.start()
    state.start()
    state.stop()
    state.stop()

    assert seen == [True, False]


def test_toggle_flips_and_notifies():
    state = SimulationState()
    seen = []
    state.on_change(seen.append)

    state.toggle()
    assert state.running is True
    state.toggle()
    assert state.running is False
    assert seen == [True, False]
