"""Huddle team messaging backend."""
