"""rubystyle: structural style checks for Ruby sources."""

__version__ = "0.1.0"
