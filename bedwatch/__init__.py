"""Posture and movement analysis for in-bed patient monitoring.

This package contains the movement analysis engine, its configuration and the
orchestration that runs it across the patient roster. Storage and ingestion live
behind protocols so the engine stays easy to test and reason about.
"""
