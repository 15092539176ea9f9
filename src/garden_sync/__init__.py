"""Keep a digital-garden repository in step with local notes and its upstream template."""

__version__ = "0.1.0"
