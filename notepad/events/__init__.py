"""
Note Events.

Event envelope types and the in-process bus the note service publishes on.
"""
