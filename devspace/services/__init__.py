"""Leaf services: ports, workspaces, readiness probing."""
