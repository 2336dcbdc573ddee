# Overview: Role permission levels and the default role set.

"""
Permission levels

Access is a single number per role. Endpoints ask for a minimum level
rather than a named permission:

- 999 admin
- 900 owner
- 800 manager  (voids, order history)
- 100 staff    (ring up sales)
"""

LEVEL_ADMIN = 999
LEVEL_OWNER = 900
LEVEL_MANAGER = 800
LEVEL_STAFF = 100

DEFAULT_ROLES = {
    "admin": LEVEL_ADMIN,
    "owner": LEVEL_OWNER,
    "manager": LEVEL_MANAGER,
    "staff": LEVEL_STAFF,
}


def has_level(permissions_level: int | None, minimum: int) -> bool:
    return int(permissions_level or 0) >= minimum
