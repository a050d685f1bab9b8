"""Module entry point: python -m scent_planner ..."""

from __future__ import annotations

from scent_planner.cli import main


if __name__ == "__main__":
    raise SystemExit(main())
