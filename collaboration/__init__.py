"""Collaboration: inter-agency announcements, interests and messages."""
