"""Integrations that sit at the boundary of the posture engine."""
