"""
assessflow

Adaptive question flows: compile declarative multi-stage questions into
explicit state machines, run them, and turn the interaction log into a
standardized analytics record.
"""

__version__ = "0.1.0"
