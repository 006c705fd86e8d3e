"""Routing — pattern compilation and the route table.

Routes are registered during setup and compiled into an immutable
lookup structure before the first dispatch.
"""
