# /recordguard/security/permissions.py
"""
Roles and the static medical record permission matrix.

Role names stored by the health office are inconsistent ('doctor',
'Laboratory Tech', 'bhw', ...). They are parsed into the closed `Role` enum
through an explicit alias table; a name that is neither a role value nor a
listed alias parses to None, and None has no capabilities.
"""
import enum


class Role(str, enum.Enum):
    ADMINISTRATOR = 'administrator'
    PHYSICIAN = 'physician'
    NURSE = 'nurse'
    RECORDS_CLERK = 'records_clerk'
    DISTRICT_HEALTH_OFFICER = 'district_health_officer'
    COMMUNITY_HEALTH_WORKER = 'community_health_worker'
    PHARMACIST = 'pharmacist'
    CASHIER = 'cashier'
    LABORATORY_TECHNICIAN = 'laboratory_technician'

    @classmethod
    def parse(cls, name):
        """Map a stored role name to a Role, or None if it is not recognised."""
        if isinstance(name, Role):
            return name
        if not name or not isinstance(name, str):
            return None
        key = name.strip().lower().replace('-', '_').replace(' ', '_')
        if key in _ROLE_VALUES:
            return cls(key)
        return _ROLE_ALIASES.get(key)


class Capability(str, enum.Enum):
    VIEW = 'view'
    PRINT = 'print'
    EXPORT = 'export'
    AUDIT = 'audit'


_ROLE_VALUES = {role.value for role in Role}

_ROLE_ALIASES = {
    'admin': Role.ADMINISTRATOR,
    'doctor': Role.PHYSICIAN,
    'records_officer': Role.RECORDS_CLERK,
    'dho': Role.DISTRICT_HEALTH_OFFICER,
    'bhw': Role.COMMUNITY_HEALTH_WORKER,
    'laboratory_tech': Role.LABORATORY_TECHNICIAN,
    'lab_tech': Role.LABORATORY_TECHNICIAN,
}

PERMISSION_MATRIX: dict[Role, frozenset] = {
    Role.ADMINISTRATOR: frozenset({Capability.VIEW, Capability.PRINT, Capability.EXPORT, Capability.AUDIT}),
    Role.PHYSICIAN: frozenset({Capability.VIEW, Capability.PRINT, Capability.EXPORT}),
    Role.NURSE: frozenset({Capability.VIEW, Capability.PRINT}),
    Role.RECORDS_CLERK: frozenset({Capability.VIEW, Capability.PRINT, Capability.EXPORT, Capability.AUDIT}),
    Role.DISTRICT_HEALTH_OFFICER: frozenset({Capability.VIEW, Capability.PRINT, Capability.EXPORT}),
    Role.COMMUNITY_HEALTH_WORKER: frozenset({Capability.VIEW, Capability.PRINT}),
    Role.PHARMACIST: frozenset({Capability.VIEW}),
    Role.CASHIER: frozenset({Capability.VIEW}),
    Role.LABORATORY_TECHNICIAN: frozenset({Capability.VIEW}),
}


def capabilities_for(role) -> frozenset:
    """All capabilities of a role; empty for unknown roles."""
    parsed = Role.parse(role)
    if parsed is None:
        return frozenset()
    return PERMISSION_MATRIX.get(parsed, frozenset())


def has_permission(role, capability) -> bool:
    """Check whether a role holds a capability.

    Args:
        role: A Role or a stored role name.
        capability: A Capability or its string value.

    Returns:
        True if the role's capability set contains the capability.
    """
    try:
        capability = Capability(capability)
    except ValueError:
        return False
    return capability in capabilities_for(role)
