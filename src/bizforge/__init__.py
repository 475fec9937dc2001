"""bizforge - business idea generation pipeline with build and deploy tracking."""

__version__ = "0.1.0"
