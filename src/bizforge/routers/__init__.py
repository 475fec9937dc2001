"""Routers package."""

from . import deployments, health, projects, versions, workspaces

__all__ = ["deployments", "health", "projects", "versions", "workspaces"]
