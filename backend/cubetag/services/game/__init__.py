"""Game domain services: sessions, the wolf role, achievements, uploads.

This package contains the in-memory game logic that socket handlers call
through GameAuthority, keeping transport concerns separated from core game
mechanics.
"""
