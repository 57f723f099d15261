"""daylit planner backend."""
