"""clauseindex - live predicate index for Prolog-style sources."""

__version__ = "0.1.0"
