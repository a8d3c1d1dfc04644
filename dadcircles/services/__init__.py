"""Shared DadCircles services."""
