"""Tests for the two-click assignment gesture."""
import pytest

from promptnest import AssignmentStateMachine, InteractionState, MessageLevel


@pytest.fixture
def machine(store, host, notifier):
    reconciled = []
    m = AssignmentStateMachine(store, host, notifier, after_mutation=lambda: reconciled.append(1))
    m.reconciled = reconciled
    return m


class TestModeTransitions:

    def test_starts_idle(self, machine):
        assert machine.state is InteractionState.IDLE
        assert machine.pending is None

    def test_enter_and_exit(self, machine):
        assert machine.enter_assign_mode() is True
        assert machine.state is InteractionState.ASSIGNING

        machine.exit_assign_mode()
        assert machine.state is InteractionState.IDLE

    def test_exit_from_idle_is_safe(self, machine):
        machine.exit_assign_mode()
        assert machine.state is InteractionState.IDLE

    def test_exit_drops_pending_without_commit(self, machine, store):
        machine.enter_assign_mode()
        machine.handle_item_activated("persona")

        machine.exit_assign_mode()

        assert machine.pending is None
        assert store.relation == {}

    def test_disabled_feature_refuses_mode(self, store, host, notifier):
        machine = AssignmentStateMachine(store, host, notifier, is_enabled=lambda: False)

        assert machine.enter_assign_mode() is False
        assert machine.state is InteractionState.IDLE
        assert notifier.last.level is MessageLevel.WARNING

    def test_clicks_ignored_when_idle(self, machine, store):
        assert machine.handle_item_activated("persona") is InteractionState.IDLE
        assert store.relation == {}

    def test_state_changed_callbacks(self, machine):
        seen = []
        machine.on_state_changed(seen.append)

        machine.enter_assign_mode()
        machine.handle_item_activated("persona")
        machine.exit_assign_mode()
        machine.exit_assign_mode()

        assert seen == [
            InteractionState.ASSIGNING,
            InteractionState.AWAITING_CONTAINER,
            InteractionState.IDLE,
        ]


class TestGesture:

    def test_first_click_sets_pending(self, machine):
        machine.enter_assign_mode()

        assert machine.handle_item_activated("persona") is InteractionState.AWAITING_CONTAINER
        assert machine.pending == "persona"

    def test_scenario_e_self_cancel(self, machine, store):
        machine.enter_assign_mode()
        machine.handle_item_activated("persona")

        state = machine.handle_item_activated("persona")

        assert state is InteractionState.ASSIGNING
        assert machine.pending is None
        assert store.relation == {}
        assert machine.reconciled == []

    def test_ineligible_item_rejected(self, machine, notifier):
        machine.enter_assign_mode()

        state = machine.handle_item_activated("chat_history")

        assert state is InteractionState.ASSIGNING
        assert machine.pending is None
        assert notifier.last.level is MessageLevel.WARNING

    def test_ineligible_container_rejected(self, machine, store, notifier):
        machine.enter_assign_mode()
        machine.handle_item_activated("persona")

        state = machine.handle_item_activated("chat_history")

        assert state is InteractionState.ASSIGNING
        assert machine.pending is None
        assert store.relation == {}
        assert machine.reconciled == []
        assert notifier.last.level is MessageLevel.WARNING

    def test_second_click_assigns(self, machine, store, notifier):
        machine.enter_assign_mode()
        machine.handle_item_activated("persona")

        state = machine.handle_item_activated("main")

        assert state is InteractionState.ASSIGNING
        assert machine.pending is None
        assert store.relation == {"main": ["persona"]}
        assert machine.reconciled == [1]
        assert notifier.last.level is MessageLevel.SUCCESS

    def test_failed_assignment_resets_gesture(self, machine, store, notifier):
        store.assign("persona", "main")
        machine.enter_assign_mode()
        machine.handle_item_activated("main")

        state = machine.handle_item_activated("scenario")

        assert state is InteractionState.ASSIGNING
        assert machine.pending is None
        assert store.relation == {"main": ["persona"]}
        assert notifier.last.level is MessageLevel.ERROR
        assert "nest" in notifier.last.message
        assert machine.reconciled == []

    def test_mode_persists_across_gestures(self, machine, store):
        machine.enter_assign_mode()
        for child in ["persona", "scenario"]:
            machine.handle_item_activated(child)
            machine.handle_item_activated("main")

        assert store.relation == {"main": ["persona", "scenario"]}
        assert machine.state is InteractionState.ASSIGNING

    def test_broken_notifier_does_not_break_gesture(self, store, host):
        class BrokenNotifier:
            def notify(self, message, level=MessageLevel.INFO):
                raise RuntimeError("toast surface gone")

        machine = AssignmentStateMachine(store, host, BrokenNotifier())
        machine.enter_assign_mode()
        machine.handle_item_activated("persona")
        machine.handle_item_activated("main")

        assert store.relation == {"main": ["persona"]}


class TestExternalRemoval:

    def test_pending_item_removed(self, machine, notifier):
        machine.enter_assign_mode()
        machine.handle_item_activated("persona")

        machine.handle_item_removed_externally("persona")

        assert machine.pending is None
        assert machine.state is InteractionState.ASSIGNING
        assert notifier.last.level is MessageLevel.INFO

    def test_removed_child_unassigned(self, machine, store):
        store.assign("persona", "main")

        assert machine.handle_item_removed_externally("persona") is True
        assert store.relation == {}

    def test_removed_container_dissolved(self, machine, store):
        store.assign("persona", "main")
        store.assign("scenario", "main")

        assert machine.handle_item_removed_externally("main") is True
        assert store.relation == {}
        assert not store.is_nested_child("persona")

    def test_unrelated_item_removed(self, machine, store):
        store.assign("persona", "main")

        assert machine.handle_item_removed_externally("jailbreak") is False
        assert store.relation == {"main": ["persona"]}
