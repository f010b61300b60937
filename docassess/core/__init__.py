"""docassess core pipeline components.

This package contains the capability contracts, the stage state machine,
the stage descriptors, summary scoring, and the document pipeline
orchestrator that drives an upload through all seven stages.
"""
