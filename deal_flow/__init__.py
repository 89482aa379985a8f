"""deal-flow: negotiation-to-contract workflow for a real-estate marketplace."""

__version__ = "0.1.0"
