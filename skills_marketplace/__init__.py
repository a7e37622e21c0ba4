"""Skills marketplace: SDP registration, plan payment and SME search."""

__version__ = "0.1.0"
