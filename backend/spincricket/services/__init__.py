"""Game domain services: the match engine and the room registry.

Nothing in this package knows about Flask or Socket.IO; HTTP routes and
socket handlers call into it.
"""
