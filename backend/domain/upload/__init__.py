"""Upload bounded context: one meal-capture session from file pick to analysis."""
