from enum import Enum


class ListingKind(str, Enum):
    # listing variants
    event = "event"
    housing = "housing"
    job = "job"
    lost_found = "lost_found"


class UserRole(str, Enum):
    user = "user"
    admin = "admin"
