"""Study planner backend."""
