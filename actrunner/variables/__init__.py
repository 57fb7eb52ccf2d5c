"""
Variable resolution module.
Resolves `${{ }}` expressions against the run context and the user.
"""

from .resolver import ExpressionResolver, extract_expressions, to_expression_string

__all__ = ['ExpressionResolver', 'extract_expressions', 'to_expression_string']
