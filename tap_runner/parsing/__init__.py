"""
Parsing Subpackage - TAP stream parsing

Contains:
- TapGrammar: Builds the nested result document from raw TAP output
- parse: Convenience wrapper around TapGrammar
"""

from .tap_grammar import TapGrammar, parse

__all__ = ['TapGrammar', 'parse']
