"""Hub — a read-mostly catalog of deployable templates and apps."""

__version__ = "0.1.0"
