"""
promptstack - agent prompt composition

Composes an agent's runtime prompt document from independently loaded data
fragments through a dependency-ordered pipeline of sections, and renders
free-text fragments with a small Mustache-style template language.
"""

__version__ = "1.0.0"
__all__ = ["__version__"]
