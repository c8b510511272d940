from enum import Enum


class Role(str, Enum):
    owner = "owner"
    admin = "admin"
    seller = "seller"


ADMIN_ROLES = {Role.owner, Role.admin}
