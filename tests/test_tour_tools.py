"""Tests for the tour backend tools."""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from tour_navigator.models import ContentNugget, FollowUpReceipt, Tour, Waypoint
from tour_navigator.state import state
from tour_navigator.core.backend import BackendError


def _get_tour_tools():
    from tour_navigator.tools.tours import register_tour_tools
    tools = {}
    mock_mcp = MagicMock()
    def capture(**kwargs):
        def decorator(fn):
            tools[fn.__name__] = fn
            return fn
        return decorator
    mock_mcp.tool = capture
    register_tour_tools(mock_mcp)
    return tools


def _remote_tour(ready=True, tour_id="t1"):
    return Tour(
        id=tour_id,
        name="Old Town",
        guide_personality="witty",
        waypoints=[
            Waypoint(name="A", lat=0.0, lng=0.0,
                     content=[ContentNugget(id="n1", answer="About A", ready=ready)]),
            Waypoint(name="B", lat=0.0, lng=0.001,
                     content=[ContentNugget(id="n2", answer="About B", ready=True)]),
        ],
    )


def _backend(**methods):
    backend = MagicMock()
    for name, mock in methods.items():
        setattr(backend, name, mock)
    return backend


def _seed_local():
    state.waypoints = [Waypoint(name="A", lat=0.0, lng=0.0), Waypoint(name="B", lat=0.0, lng=0.001)]


@pytest.mark.anyio
async def test_list_tours():
    tools = _get_tour_tools()
    backend = _backend(list_tours=AsyncMock(return_value=[_remote_tour()]))
    with patch("tour_navigator.tools._services.get_backend", return_value=backend):
        result = await tools["list_tours"]()
    assert "t1: Old Town (2 stops)" in result


@pytest.mark.anyio
async def test_list_tours_error():
    tools = _get_tour_tools()
    backend = _backend(list_tours=AsyncMock(side_effect=BackendError("Backend request failed: down")))
    with patch("tour_navigator.tools._services.get_backend", return_value=backend):
        result = await tools["list_tours"]()
    assert result.startswith("Error")


@pytest.mark.anyio
async def test_load_tour_replaces_workspace_and_polls_incomplete_content():
    tools = _get_tour_tools()
    _seed_local()
    state.waypoints[0].visited = True
    backend = _backend(get_tour=AsyncMock(return_value=_remote_tour(ready=False)))
    with patch("tour_navigator.tools._services.get_backend", return_value=backend):
        result = await tools["load_tour"](tour_id="t1")
        assert state.tasks.polling
    state.tasks.teardown()
    assert "1/2" in result
    assert state.tour_id == "t1"
    assert state.guide_personality == "witty"
    assert [w.name for w in state.waypoints] == ["A", "B"]
    assert not any(w.visited for w in state.waypoints)


@pytest.mark.anyio
async def test_load_tour_complete_content_does_not_poll():
    tools = _get_tour_tools()
    backend = _backend(get_tour=AsyncMock(return_value=_remote_tour(ready=True)))
    with patch("tour_navigator.tools._services.get_backend", return_value=backend):
        await tools["load_tour"](tour_id="t1")
    assert not state.tasks.polling


@pytest.mark.anyio
async def test_load_tour_failure_keeps_workspace():
    tools = _get_tour_tools()
    _seed_local()
    backend = _backend(get_tour=AsyncMock(side_effect=BackendError("Backend returned HTTP 404: missing")))
    with patch("tour_navigator.tools._services.get_backend", return_value=backend):
        result = await tools["load_tour"](tour_id="nope")
    assert result.startswith("Error")
    assert len(state.waypoints) == 2


@pytest.mark.anyio
async def test_save_tour_sets_flag_and_merges_content():
    tools = _get_tour_tools()
    _seed_local()
    local_ids = [w.id for w in state.waypoints]
    seen = {}

    async def save(tour):
        seen["in_flight"] = state.is_processing_submission
        seen["payload"] = tour.to_wire()
        return _remote_tour(ready=True)

    backend = _backend(save_tour=AsyncMock(side_effect=save))
    with patch("tour_navigator.tools._services.get_backend", return_value=backend):
        result = await tools["save_tour"](name="Old Town", guide_personality="witty", user_preferences="food")
    assert seen["in_flight"] is True
    assert state.is_processing_submission is False
    assert seen["payload"]["tour_name"] == "Old Town"
    assert seen["payload"]["user_preferences"] == "food"
    assert "tour_id" not in seen["payload"]
    assert state.tour_id == "t1"
    assert [w.id for w in state.waypoints] == local_ids
    assert state.waypoints[0].content[0].answer == "About A"
    assert "2/2" in result


@pytest.mark.anyio
async def test_save_tour_failure_clears_flag():
    tools = _get_tour_tools()
    _seed_local()
    backend = _backend(save_tour=AsyncMock(side_effect=BackendError("Backend request failed: down")))
    with patch("tour_navigator.tools._services.get_backend", return_value=backend):
        result = await tools["save_tour"]()
    assert result.startswith("Error")
    assert state.is_processing_submission is False
    assert state.tour_id == ""


@pytest.mark.anyio
async def test_save_tour_requires_waypoints():
    tools = _get_tour_tools()
    assert (await tools["save_tour"]()).startswith("Error")


def _arrived_at_first():
    state.tour_id = "t1"
    state.waypoints = _remote_tour().waypoints
    state.navigation.active_follow_up_waypoint_id = state.waypoints[0].id


@pytest.mark.anyio
async def test_ask_question_adds_placeholder_after_acceptance():
    tools = _get_tour_tools()
    _arrived_at_first()
    backend = _backend(
        post_follow_up_question=AsyncMock(return_value=FollowUpReceipt(nugget_id="q1")),
        get_tour=AsyncMock(return_value=_remote_tour()),
    )
    with patch("tour_navigator.tools._services.get_backend", return_value=backend):
        result = await tools["ask_question"](question="Who built it?")
        assert state.tasks.polling
    state.tasks.teardown()
    assert "accepted" in result
    backend.post_follow_up_question.assert_awaited_once_with("t1", "A", "Who built it?")
    placeholder = state.waypoints[0].content[-1]
    assert placeholder.question == "Who built it?"
    assert placeholder.id == "q1"
    assert placeholder.ready is False
    assert state.navigation.pending_question == ""


@pytest.mark.anyio
async def test_rejected_question_leaves_content_untouched():
    tools = _get_tour_tools()
    _arrived_at_first()
    before = [n.model_copy() for n in state.waypoints[0].content]
    backend = _backend(post_follow_up_question=AsyncMock(side_effect=BackendError("Backend returned HTTP 500: x")))
    with patch("tour_navigator.tools._services.get_backend", return_value=backend):
        result = await tools["ask_question"](question="Why?")
    assert result.startswith("Error")
    assert state.waypoints[0].content == before
    assert not state.tasks.polling


@pytest.mark.anyio
async def test_ask_question_with_ready_answer():
    tools = _get_tour_tools()
    _arrived_at_first()
    receipt = FollowUpReceipt(nugget_id="q2", nugget=ContentNugget(question="Why?", answer="Because", ready=True))
    backend = _backend(post_follow_up_question=AsyncMock(return_value=receipt))
    with patch("tour_navigator.tools._services.get_backend", return_value=backend):
        result = await tools["ask_question"](question="Why?")
    assert "Because" in result
    assert state.waypoints[0].content[-1].ready is True


@pytest.mark.anyio
async def test_ask_question_needs_arrival():
    tools = _get_tour_tools()
    state.tour_id = "t1"
    _seed_local()
    result = await tools["ask_question"](question="Why?")
    assert result.startswith("Error")


@pytest.mark.anyio
async def test_refresh_content_merges():
    tools = _get_tour_tools()
    _seed_local()
    state.tour_id = "t1"
    backend = _backend(get_tour=AsyncMock(return_value=_remote_tour(ready=True)))
    with patch("tour_navigator.tools._services.get_backend", return_value=backend):
        result = await tools["refresh_content"]()
    assert "2/2" in result
    assert state.waypoints[1].content[0].answer == "About B"


@pytest.mark.anyio
async def test_refresh_content_blocked_during_submission():
    tools = _get_tour_tools()
    _seed_local()
    state.tour_id = "t1"
    state.is_processing_submission = True
    assert (await tools["refresh_content"]()).startswith("Error")


@pytest.mark.anyio
async def test_placeholder_survives_poll_during_question():
    from tour_navigator.tools import _services
    tools = _get_tour_tools()
    _arrived_at_first()
    first_id = state.waypoints[0].id

    async def post(tour_id, name, question):
        # a content poll lands while the question is in flight
        _services.apply_remote_tour(_remote_tour())
        return FollowUpReceipt(nugget_id="q1")

    backend = _backend(
        post_follow_up_question=AsyncMock(side_effect=post),
        get_tour=AsyncMock(return_value=_remote_tour()),
    )
    with patch("tour_navigator.tools._services.get_backend", return_value=backend):
        result = await tools["ask_question"](question="Who built it?")
    state.tasks.teardown()
    assert "accepted" in result
    assert state.waypoints[0].id == first_id
    questions = [n.question for n in state.waypoints[0].content]
    assert questions == [None, "Who built it?"]


@pytest.mark.anyio
async def test_question_already_delivered_by_poll_is_not_duplicated():
    from tour_navigator.tools import _services
    tools = _get_tour_tools()
    _arrived_at_first()

    async def post(tour_id, name, question):
        remote = _remote_tour()
        remote.waypoints[0].content.append(
            ContentNugget(id="q1", question=question, answer="Bob", ready=True),
        )
        _services.apply_remote_tour(remote)
        return FollowUpReceipt(nugget_id="q1")

    backend = _backend(post_follow_up_question=AsyncMock(side_effect=post))
    with patch("tour_navigator.tools._services.get_backend", return_value=backend):
        result = await tools["ask_question"](question="Who built it?")
    assert "Bob" in result
    assert [n.id for n in state.waypoints[0].content] == ["n1", "q1"]


@pytest.mark.anyio
async def test_rejected_question_clears_pending_text():
    tools = _get_tour_tools()
    _arrived_at_first()
    backend = _backend(post_follow_up_question=AsyncMock(side_effect=BackendError("Backend request failed: down")))
    with patch("tour_navigator.tools._services.get_backend", return_value=backend):
        await tools["ask_question"](question="Why?")
    assert state.navigation.pending_question == ""
