"""Moderated community forum.

- Posts and comments stored in Cassandra
- Threaded replies rebuilt from a flat comment list
- Submission orchestration around the moderation classifier
"""

from .router import router
from .service import CommunityError, CommunityService


__all__ = ["CommunityError", "CommunityService", "router"]
