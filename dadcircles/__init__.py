"""
DadCircles backend.

Matches onboarded dads into small local peer groups by city and the
life stage of their child.
"""
