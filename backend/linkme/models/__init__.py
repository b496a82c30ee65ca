"""
LinkMe Backend - ORM Models
=============================

Importing this package registers every table on Base.metadata
(Alembic autogenerate and the test suite's create_all() rely on that).
"""

from linkme.models.user import User
from linkme.models.profile import Profile
from linkme.models.social_link import SocialLink
from linkme.models.view_event import ViewEvent, ViewSource

__all__ = ["User", "Profile", "SocialLink", "ViewEvent", "ViewSource"]
