"""
Tests: application & contract status machines (pure table lookups).
"""

import pytest

from app.core.exceptions import PolicyError
from app.workflow.status_machine import (
    APPLICATION_STATES,
    APPLICATION_TRANSITIONS,
    ROUTED,
    actionable_statuses,
    available_actions,
    contract_available_actions,
    is_actionable_by,
    require_contract_transition,
    require_transition,
    validate_transition,
)


class TestApplicationTable:
    def test_every_state_in_table_is_known(self):
        for rules in APPLICATION_TRANSITIONS.values():
            for status, rule in rules.items():
                assert status in APPLICATION_STATES
                assert rule["to"] in APPLICATION_STATES or rule["to"] == ROUTED

    @pytest.mark.parametrize("status", ["draft", "more_info_required"])
    def test_supplier_submits_editable(self, status):
        assert require_transition(status, "submit", "supplier") == "pending_procurement"

    def test_procurement_approve_is_routed(self):
        assert require_transition("pending_procurement", "approve", "procurement") == ROUTED

    def test_legal_approve_is_final(self):
        assert require_transition("pending_legal", "approve", "legal") == "approved"

    def test_role_denial_carries_role(self):
        with pytest.raises(PolicyError) as exc:
            require_transition("pending_legal", "approve", "procurement")
        assert exc.value.is_role_denial
        assert exc.value.role == "procurement"

    def test_invalid_transition_is_not_role_denial(self):
        with pytest.raises(PolicyError) as exc:
            require_transition("rejected", "approve", "procurement")
        assert not exc.value.is_role_denial

    def test_unknown_action(self):
        result = validate_transition("draft", "publish", "supplier")
        assert not result["valid"]
        assert "Unknown action" in result["reason"]

    def test_role_none_skips_role_check(self):
        assert validate_transition("pending_legal", "approve")["valid"]

    def test_rejected_is_terminal(self):
        for role in ("supplier", "procurement", "legal", "super_admin", "management"):
            assert available_actions("rejected", role) == []

    def test_vendor_number_only_once(self):
        assert available_actions("approved", "procurement") == ["assign_vendor_number"]
        assert available_actions("approved", "procurement", vendor_number="V-001") == []
        assert not validate_transition(
            "approved", "assign_vendor_number", "procurement", vendor_number="V-001",
        )["valid"]


class TestPredicates:
    def test_is_actionable_by_stage(self):
        assert is_actionable_by("pending_procurement", "procurement")
        assert not is_actionable_by("pending_procurement", "legal")
        assert is_actionable_by("pending_legal", "legal")
        assert not is_actionable_by("pending_legal", "procurement")

    def test_request_info_is_stage_matched(self):
        assert "request_info" in available_actions("pending_legal", "legal")
        assert "request_info" not in available_actions("pending_legal", "procurement")

    def test_actionable_statuses(self):
        assert actionable_statuses("legal") == frozenset({"pending_legal"})
        assert actionable_statuses("procurement") == frozenset({
            "submitted", "pending_procurement", "more_info_required", "approved",
        })
        assert actionable_statuses("management") == frozenset()


class TestContractTable:
    def test_activate_then_terminate(self):
        assert require_contract_transition("draft", "activate", "legal") == "active"
        assert require_contract_transition("active", "terminate", "super_admin") == "terminated"

    def test_system_may_expire(self):
        assert require_contract_transition("active", "expire", "system") == "expired"

    def test_renew_from_expired(self):
        assert require_contract_transition("expired", "renew", "procurement") == "renewed"

    def test_procurement_cannot_activate(self):
        with pytest.raises(PolicyError) as exc:
            require_contract_transition("draft", "activate", "procurement")
        assert exc.value.is_role_denial

    def test_available_actions(self):
        assert contract_available_actions("active", "legal") == ["expire", "terminate", "renew"]
        assert contract_available_actions("terminated", "legal") == []
