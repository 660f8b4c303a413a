"""Small helpers shared across GoalForge."""
