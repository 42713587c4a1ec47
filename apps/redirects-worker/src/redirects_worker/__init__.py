"""Timer-driven redirect reconciliation worker."""
