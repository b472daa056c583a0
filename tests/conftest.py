import pytest


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def fresh_state():
    """Every test starts from an empty workspace with default params.

    Tests that start a poller or a position watch tear it down themselves,
    while their event loop is still running.
    """
    from tour_navigator.state import state, NavigationParams, PositionMode
    state.reset_tour()
    state.params = NavigationParams()
    state.navigation.mode = PositionMode.SIMULATED
    return state
