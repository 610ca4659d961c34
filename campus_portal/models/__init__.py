from campus_portal.models.user import User
from campus_portal.models.listing import Listing
from campus_portal.models.notification import Notification

__all__ = ["User", "Listing", "Notification"]
