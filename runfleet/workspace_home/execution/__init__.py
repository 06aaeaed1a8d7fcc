"""Execution pipeline for the workspace home.

This package contains the run-level components:

- **naming**: Titles, worktree slugs, run ids and model labels (pure)
- **attachments**: Image attachment clean-up and display names (pure)
- **outcome**: ``Ok | Fallback`` result for best-effort steps
- **orchestrator**: Submission lifecycle (accept -> name -> materialize -> settle)
"""
