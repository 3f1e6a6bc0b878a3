"""Graph engine components."""
