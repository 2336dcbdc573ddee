# Overview: Role and staff bootstrap used by the CLI and tests.

from ..extensions import db
from ..models import Role, Staff
from ..permissions import DEFAULT_ROLES


def create_default_roles() -> list[Role]:
    """Create the default roles if missing. Safe to call repeatedly."""
    roles = []
    for name, level in DEFAULT_ROLES.items():
        role = db.session.query(Role).filter_by(name=name).first()
        if not role:
            role = Role(name=name, permissions_level=level)
            db.session.add(role)
        roles.append(role)
    db.session.commit()
    return roles


def create_staff(name: str, username: str, role_name: str = "staff") -> Staff:
    """Raises ValueError for an unknown role or a taken username."""
    role = db.session.query(Role).filter_by(name=role_name).first()
    if not role:
        raise ValueError(f"Role '{role_name}' not found")

    if db.session.query(Staff).filter_by(username=username).first():
        raise ValueError(f"Username '{username}' already exists")

    staff = Staff(name=name, username=username, role_id=role.id, is_active=True)
    db.session.add(staff)
    db.session.commit()
    return staff
