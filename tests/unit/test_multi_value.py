"""Unit tests for MultiValueListControl."""

import pytest

from dialog_controls.common.multi_value_list import (
    TOUCH_COMPLETE,
    TOUCH_REMOVE,
    TOUCH_SELECT,
    TOUCH_TOGGLE,
    MultiValueListControl,
    MultiValueValidationFailure,
)
from dialog_controls.testing import TestInput

TOPPINGS = ["cheese", "ham", "olives", "peppers"]


def topping(value, **kwargs):
    return TestInput.value("Topping", value, **kwargs)


def act_names(builder):
    return [act.name for act in builder.acts]


def no_olives(values, input):
    sold_out = [v["id"] for v in values if v["id"] == "olives"]
    if not sold_out:
        return True
    return MultiValueValidationFailure(invalid_values=sold_out, reason_code="SoldOut")


@pytest.fixture
def toppings():
    return MultiValueListControl("toppings", slot_type="Topping", list_item_ids=TOPPINGS, page_size=2)


def with_items(control, *ids):
    for item_id in ids:
        control.add_value({"id": item_id, "er_match": True})
    return control


class TestAddAndRemove:
    """Tests for adding and removing items by voice."""

    @pytest.mark.asyncio
    async def test_add_several(self, toppings, run_turn):
        """Test "add cheese and ham" adds both items."""
        builder = await run_turn(toppings, topping(["cheese", "ham"], action="add"))

        assert act_names(builder) == ["ValueAdded"]
        assert builder.acts[0].value == ["cheese", "ham"]
        assert builder.acts[0].rendered_value == "cheese, ham"
        assert toppings.get_slot_ids() == ["cheese", "ham"]
        assert toppings.value[0] == {"id": "cheese", "er_match": True}

    @pytest.mark.asyncio
    async def test_bare_value_adds(self, toppings, run_turn):
        """Test a value without an action is an add."""
        builder = await run_turn(toppings, topping("peppers"))

        assert act_names(builder) == ["ValueAdded"]
        assert toppings.get_slot_ids() == ["peppers"]

    @pytest.mark.asyncio
    async def test_add_filters_invalid_items(self, run_turn):
        """Test rejected items are reported and the rest are still added."""
        control = MultiValueListControl(
            "toppings",
            slot_type="Topping",
            list_item_ids=TOPPINGS,
            validation=no_olives,
        )

        builder = await run_turn(control, topping(["cheese", "olives"], action="add"))

        assert act_names(builder) == ["ValueAdded", "InvalidValue"]
        assert builder.acts[0].value == ["cheese"]
        assert builder.acts[1].value == ["olives"]
        assert builder.acts[1].reason_code == "SoldOut"
        assert control.get_slot_ids() == ["cheese"]

    @pytest.mark.asyncio
    async def test_remove(self, toppings, run_turn):
        """Test "remove the ham"."""
        with_items(toppings, "cheese", "ham")

        builder = await run_turn(toppings, topping("ham", action="remove"))

        assert act_names(builder) == ["ValueRemoved"]
        assert builder.acts[0].value == ["ham"]
        assert toppings.get_slot_ids() == ["cheese"]

    @pytest.mark.asyncio
    async def test_remove_unknown_item(self, toppings, run_turn):
        """Test removing an item that was never added asks what to remove."""
        with_items(toppings, "cheese", "ham")

        builder = await run_turn(toppings, topping("olives", action="remove"))

        assert act_names(builder) == ["InvalidRemoveValue", "RequestRemovedValueByList"]
        assert builder.acts[1].available_choices == ["cheese", "ham"]
        assert toppings.get_slot_ids() == ["cheese", "ham"]

    @pytest.mark.asyncio
    async def test_add_without_value(self, toppings, run_turn):
        """Test "add a topping" offers the list."""
        builder = await run_turn(toppings, TestInput.general(action="add", target="toppings"))

        assert act_names(builder) == ["RequestValueByList"]
        assert builder.acts[0].choices_from_active_page == ["cheese", "ham"]

    @pytest.mark.asyncio
    async def test_remove_without_value(self, toppings, run_turn):
        """Test "remove a topping" lists what can be removed."""
        with_items(toppings, "olives")

        builder = await run_turn(toppings, TestInput.general(action="remove", target="toppings"))

        assert act_names(builder) == ["RequestRemovedValueByList"]
        assert builder.acts[0].available_choices == ["olives"]

    @pytest.mark.asyncio
    async def test_clear_then_elicit(self, toppings, run_turn):
        """Test clearing a required list asks for items again."""
        with_items(toppings, "cheese", "ham")

        builder = await run_turn(toppings, TestInput.general(action="clear", target="toppings"))

        assert act_names(builder) == ["ValueCleared", "RequestValueByList"]
        assert builder.acts[0].value == ["cheese", "ham"]
        assert toppings.get_slot_ids() == []


class TestTouch:
    """Tests for on-screen selection."""

    @pytest.mark.asyncio
    async def test_select(self, toppings, run_turn):
        """Test touching the third choice adds it."""
        builder = await run_turn(toppings, TestInput.user_event("toppings", TOUCH_SELECT, 3))

        assert act_names(builder) == ["ValueAdded"]
        assert toppings.get_slot_ids() == ["olives"]

    @pytest.mark.asyncio
    async def test_toggle_removes_selected_item(self, toppings, run_turn):
        """Test toggling an added item removes it."""
        with_items(toppings, "cheese", "ham")

        builder = await run_turn(toppings, TestInput.user_event("toppings", TOUCH_TOGGLE, 1))

        assert act_names(builder) == ["ValueRemoved"]
        assert toppings.get_slot_ids() == ["ham"]

    @pytest.mark.asyncio
    async def test_remove_by_position(self, toppings, run_turn):
        """Test the remove button removes by position in the selection."""
        with_items(toppings, "cheese", "ham")

        builder = await run_turn(toppings, TestInput.user_event("toppings", TOUCH_REMOVE, 2))

        assert act_names(builder) == ["ValueRemoved"]
        assert builder.acts[0].value == ["ham"]

    @pytest.mark.asyncio
    async def test_remove_out_of_range_not_handled(self, toppings, make_input):
        """Test a remove touch beyond the selection is not handled."""
        with_items(toppings, "cheese")

        input = make_input(TestInput.user_event("toppings", TOUCH_REMOVE, 4))

        assert await toppings.can_handle(input) is False

    @pytest.mark.asyncio
    async def test_complete(self, toppings, run_turn):
        """Test the done button confirms the selection."""
        with_items(toppings, "cheese")

        builder = await run_turn(toppings, TestInput.user_event("toppings", TOUCH_COMPLETE))

        assert act_names(builder) == ["ValueConfirmed"]
        assert toppings.state.confirmed is True

    @pytest.mark.asyncio
    async def test_complete_revalidates(self, run_turn):
        """Test the done button does not confirm a selection that no longer validates."""
        control = with_items(
            MultiValueListControl("toppings", slot_type="Topping", list_item_ids=TOPPINGS, validation=no_olives),
            "cheese",
            "olives",
        )

        builder = await run_turn(control, TestInput.user_event("toppings", TOUCH_COMPLETE))

        assert act_names(builder) == ["InvalidValue", "RequestValueByList"]
        assert builder.acts[0].reason_code == "SoldOut"
        assert control.state.confirmed is False

    @pytest.mark.asyncio
    async def test_complete_with_nothing_selected(self, toppings, make_input):
        input = make_input(TestInput.user_event("toppings", TOUCH_COMPLETE))

        assert await toppings.can_handle(input) is False
        assert toppings.state.confirmed is False


class TestInitiative:
    """Tests for elicitation and confirmation of the whole list."""

    @pytest.mark.asyncio
    async def test_elicits_when_empty(self, toppings, run_turn):
        builder = await run_turn(toppings, TestInput.launch())

        assert act_names(builder) == ["RequestValueByList"]
        assert builder.acts[0].all_choices == TOPPINGS

    @pytest.mark.asyncio
    async def test_confirm_list(self, run_turn):
        """Test the list is confirmed once items are added."""
        control = MultiValueListControl(
            "toppings",
            slot_type="Topping",
            list_item_ids=TOPPINGS,
            confirmation_required=True,
        )

        builder = await run_turn(control, topping("cheese", action="add"))
        assert act_names(builder) == ["ValueAdded", "ConfirmValue"]
        assert builder.acts[1].value == ["cheese"]

        builder = await run_turn(control, TestInput.yes())
        assert act_names(builder) == ["ValueConfirmed"]
        assert control.state.confirmed is True

    def test_diagram_text(self, toppings):
        assert toppings.stringify_state_for_diagram() == "<none>"

        with_items(toppings, "cheese", "ham")

        assert toppings.stringify_state_for_diagram() == "[cheese, ham]"
