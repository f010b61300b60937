"""docassess: compliance assessment pipeline for uploaded policy documents."""

__version__ = "0.1.0"
