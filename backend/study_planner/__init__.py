"""Study planner backend: turns pasted tables of contents into an ordered curriculum."""
