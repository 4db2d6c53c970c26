"""Use cases — end-to-end flows composed from services."""
