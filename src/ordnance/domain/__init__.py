"""Domain layer for weapon data reconciliation (pure, dependency-light)."""
