"""
Unit tests for role parsing and the permission matrix.
"""

import pytest

from recordguard.security.permissions import (
    Capability, PERMISSION_MATRIX, Role, capabilities_for, has_permission
)


# ── Role parsing ─────────────────────────────────────────────────────

@pytest.mark.parametrize('name, expected', [
    ('administrator', Role.ADMINISTRATOR),
    ('admin', Role.ADMINISTRATOR),
    ('Doctor', Role.PHYSICIAN),
    ('records_officer', Role.RECORDS_CLERK),
    ('DHO', Role.DISTRICT_HEALTH_OFFICER),
    ('bhw', Role.COMMUNITY_HEALTH_WORKER),
    ('Laboratory Tech', Role.LABORATORY_TECHNICIAN),
    ('lab-tech', Role.LABORATORY_TECHNICIAN),
    ('  nurse ', Role.NURSE),
])
def test_parse_known_names(name, expected):
    assert Role.parse(name) is expected


@pytest.mark.parametrize('name', ['janitor', 'superuser', '', None, 42])
def test_parse_unknown_names_is_none(name):
    assert Role.parse(name) is None


def test_parse_passes_role_through():
    assert Role.parse(Role.CASHIER) is Role.CASHIER


# ── Permission matrix ────────────────────────────────────────────────

def test_every_role_has_a_matrix_row():
    assert set(PERMISSION_MATRIX) == set(Role)


def test_every_role_can_view():
    assert all(Capability.VIEW in caps for caps in PERMISSION_MATRIX.values())


@pytest.mark.parametrize('role', [Role.ADMINISTRATOR, Role.RECORDS_CLERK])
def test_audit_capability_holders(role):
    assert has_permission(role, Capability.AUDIT)


@pytest.mark.parametrize('role', [Role.PHARMACIST, Role.CASHIER, Role.LABORATORY_TECHNICIAN])
def test_interaction_roles_are_view_only(role):
    assert capabilities_for(role) == frozenset({Capability.VIEW})


def test_nurse_cannot_export_or_audit():
    assert has_permission(Role.NURSE, Capability.PRINT)
    assert not has_permission(Role.NURSE, Capability.EXPORT)
    assert not has_permission(Role.NURSE, Capability.AUDIT)


def test_stored_role_names_and_string_capabilities():
    assert has_permission('doctor', 'export')
    assert not has_permission('bhw', 'audit')


@pytest.mark.parametrize('capability', list(Capability))
def test_unknown_role_has_no_capabilities(capability):
    assert capabilities_for('janitor') == frozenset()
    assert not has_permission('janitor', capability)
    assert not has_permission(None, capability)


def test_unknown_capability_is_refused():
    assert not has_permission(Role.ADMINISTRATOR, 'delete')
