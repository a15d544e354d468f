"""Service layer coordinating verification results with repository calls."""
