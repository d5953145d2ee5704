"""Workflow engine, role views and supporting stores."""
