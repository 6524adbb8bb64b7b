"""Domain Event definitions.

Represents significant occurrences during a batch run that other parts
of the system (logging, progress) might react to.
"""
