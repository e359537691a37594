"""
Exceptions raised by the region-merge engine.

InvariantViolation — the graph reached a state that should be impossible
                     (merging a dead or non-adjacent region, asymmetric
                     adjacency, lost pixels). Never caught by the library.
InputValidation    — the label image handed to the parser is unusable.
"""


class InvariantViolation(RuntimeError):
    """Internal consistency check failed on the region graph."""


class InputValidation(ValueError):
    """Malformed or reserved input detected while parsing a label image."""
